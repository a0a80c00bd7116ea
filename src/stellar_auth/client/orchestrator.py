# src/stellar_auth/client/orchestrator.py
"""Client-side driver for the Stellar login flow.

The orchestrator runs on the user's side of the trust boundary. It only talks
to the server through the public HTTP endpoints and never sees the server
secret; signing happens in whatever signer the caller supplies.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol

import httpx
from stellar_sdk import Keypair, TransactionEnvelope

from stellar_auth.client.state import PersistedAuthState, StateStore
from stellar_auth.sep7 import DEFAULT_SCHEME, build_signing_uri

logger = logging.getLogger(__name__)

DEFAULT_API_PREFIX = "/api/v1"
DEFAULT_COOKIE_NAME = "stellar_auth_session"

_PUBLIC_KEY_RE = re.compile(r"^G[A-Z2-7]{55}$")


class AuthState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CHALLENGE_ISSUED = "challenge_issued"
    AWAITING_EXTERNAL_SIGNATURE = "awaiting_external_signature"
    VERIFYING = "verifying"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class InvalidTransitionError(RuntimeError):
    """Raised when an operation is called from a state that does not allow it."""


class SigningRejectedError(RuntimeError):
    """Raised by a signer when the user declines or the signer cannot sign."""


class KeySource(Protocol):
    """Wallet-like object able to report the user's public key."""

    def get_public_key(self) -> str: ...


class ExtensionSigner(Protocol):
    """Wallet-like object able to co-sign a challenge envelope in-process."""

    def sign_transaction(self, envelope: str, network_passphrase: str) -> str: ...


class LocalKeypairSigner:
    """Key source and signer backed by a secret seed held by the caller."""

    def __init__(self, secret: str) -> None:
        try:
            self._keypair = Keypair.from_secret(secret)
        except ValueError as exc:
            raise SigningRejectedError("Invalid secret seed") from exc

    def get_public_key(self) -> str:
        return self._keypair.public_key

    def sign_transaction(self, envelope: str, network_passphrase: str) -> str:
        try:
            tx = TransactionEnvelope.from_xdr(envelope, network_passphrase)
        except Exception as exc:
            raise SigningRejectedError("Challenge envelope could not be decoded") from exc
        tx.sign(self._keypair)
        return tx.to_xdr()


def is_valid_public_key_format(value: object) -> bool:
    """Cheap local check: ``G`` prefix, 56 characters, base32 alphabet."""
    return isinstance(value, str) and bool(_PUBLIC_KEY_RE.match(value))


def _server_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return f"Server responded with {response.status_code}"
    detail = payload.get("detail", payload) if isinstance(payload, dict) else payload
    if isinstance(detail, dict) and detail.get("error"):
        return str(detail["error"])
    if isinstance(detail, str) and detail:
        return detail
    return f"Server responded with {response.status_code}"


class AuthOrchestrator:
    """State machine for one login attempt.

    Every operation returns the resulting :class:`AuthState`; failures move
    the machine to ``FAILED`` and leave the reason in :attr:`error`.
    ``GET /auth/status`` is the only authority on whether a session exists.
    """

    def __init__(
        self,
        http: httpx.Client,
        *,
        state_store: StateStore | None = None,
        api_prefix: str = DEFAULT_API_PREFIX,
        cookie_name: str = DEFAULT_COOKIE_NAME,
        deep_link_scheme: str = DEFAULT_SCHEME,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._http = http
        self._store = state_store
        self._prefix = api_prefix.rstrip("/")
        self._cookie_name = cookie_name
        self._scheme = deep_link_scheme
        self._clock = clock or (lambda: datetime.now(UTC))
        self._reset()

    def _reset(self) -> None:
        self.state = AuthState.IDLE
        self.public_key: str | None = None
        self.user_id: int | None = None
        self.transaction: str | None = None
        self.network_passphrase: str | None = None
        self.nonce: str | None = None
        self.expires_at: datetime | None = None
        self.callback_url: str | None = None
        self.deep_link: str | None = None
        self.bot_url: str | None = None
        self.error: str | None = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _url(self, path: str) -> str:
        return f"{self._prefix}{path}"

    def _require(self, *allowed: AuthState) -> None:
        if self.state not in allowed:
            names = ", ".join(state.value for state in allowed)
            raise InvalidTransitionError(f"Cannot do this from {self.state.value} (needs {names})")

    def _issued_challenge(self) -> tuple[str, str]:
        if self.transaction is None or self.network_passphrase is None:
            raise InvalidTransitionError("No challenge has been issued")
        return self.transaction, self.network_passphrase

    def _fail(self, message: str) -> AuthState:
        logger.warning("Login failed: %s", message)
        self.state = AuthState.FAILED
        self.error = message
        self._persist()
        return self.state

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response | None:
        try:
            return self._http.request(method, self._url(path), **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Request to %s failed: %s", path, exc)
            self.error = f"Could not reach the server: {exc}"
            return None

    def _session_token(self) -> str | None:
        for cookie in self._http.cookies.jar:
            if cookie.name == self._cookie_name:
                return cookie.value
        return None

    def _snapshot(self) -> PersistedAuthState:
        return PersistedAuthState(
            state=self.state.value,
            public_key=self.public_key,
            transaction=self.transaction,
            network_passphrase=self.network_passphrase,
            nonce=self.nonce,
            expires_at=self.expires_at,
            callback_url=self.callback_url,
            deep_link=self.deep_link,
            bot_url=self.bot_url,
            session_token=self._session_token(),
            user_id=self.user_id,
            error=self.error,
        )

    def _persist(self) -> None:
        if self._store is not None:
            self._store.save(self._snapshot())

    def _challenge_expired(self) -> bool:
        return self.expires_at is not None and self._clock() >= self.expires_at

    # ------------------------------------------------------------------
    # Flow
    # ------------------------------------------------------------------
    def connect(
        self,
        key_source: KeySource | None = None,
        *,
        manual_key: str | None = None,
    ) -> AuthState:
        """Pick up the user's public key from a wallet or from manual input."""
        self._require(AuthState.IDLE, AuthState.FAILED)
        self._reset()
        self.state = AuthState.CONNECTING

        if key_source is not None:
            try:
                candidate = key_source.get_public_key()
            except SigningRejectedError as exc:
                return self._fail(str(exc) or "Wallet refused to share its public key")
        else:
            candidate = (manual_key or "").strip()

        if not candidate:
            return self._fail("publicKey is required")
        if not is_valid_public_key_format(candidate):
            return self._fail("Invalid public key format")

        self.public_key = candidate
        return self.state

    def request_challenge(self) -> AuthState:
        """Ask the server for a challenge bound to the connected key."""
        self._require(AuthState.CONNECTING)
        response = self._send("POST", "/auth/challenge", json={"publicKey": self.public_key})
        if response is None:
            return self._fail(self.error or "Could not reach the server")
        if response.status_code != httpx.codes.OK:
            return self._fail(_server_message(response))

        try:
            payload = response.json()
            transaction = payload["transaction"]
            network_passphrase = payload["networkPassphrase"]
            expires_at = datetime.fromisoformat(payload["expiresAt"])
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Unreadable challenge response: %r", exc)
            return self._fail("Server returned an invalid challenge")
        if not isinstance(transaction, str) or not isinstance(network_passphrase, str):
            return self._fail("Server returned an invalid challenge")

        self.transaction = transaction
        self.network_passphrase = network_passphrase
        self.nonce = payload.get("nonce")
        self.expires_at = expires_at
        self.callback_url = payload.get("callbackUrl")
        self.state = AuthState.CHALLENGE_ISSUED
        self._persist()
        return self.state

    def sign_with_extension(self, signer: ExtensionSigner) -> AuthState:
        """Co-sign in-process and post the envelope to ``/auth/verify``."""
        self._require(AuthState.CHALLENGE_ISSUED)
        transaction, network_passphrase = self._issued_challenge()

        self.state = AuthState.AWAITING_EXTERNAL_SIGNATURE
        try:
            signed = signer.sign_transaction(transaction, network_passphrase)
        except SigningRejectedError as exc:
            return self._fail(str(exc) or "Failed to sign transaction")

        self.state = AuthState.VERIFYING
        response = self._send(
            "POST",
            "/auth/verify",
            json={"transaction": signed, "publicKey": self.public_key},
        )
        if response is None:
            return self._fail(self.error or "Could not reach the server")
        if response.status_code != httpx.codes.OK:
            return self._fail(_server_message(response))

        return self._refresh_after_verification()

    def submit_signed_envelope(self, envelope: str) -> AuthState:
        """Post an envelope signed elsewhere to the callback endpoint."""
        self._require(AuthState.CHALLENGE_ISSUED, AuthState.AWAITING_EXTERNAL_SIGNATURE)
        if self._challenge_expired():
            return self._fail("Challenge expired")

        self.state = AuthState.VERIFYING
        response = self._send("POST", "/auth/callback", json={"xdr": envelope})
        if response is None:
            return self._fail(self.error or "Could not reach the server")
        if response.status_code != httpx.codes.OK:
            return self._fail(_server_message(response))

        return self._refresh_after_verification()

    def hand_off_to_bot(self, *, return_url: str | None = None) -> str:
        """Build the SEP-0007 link and try to route it through the signing bot.

        Returns the bot URL, or the direct deep link when the relay is
        unavailable. The flow stays alive either way.
        """
        self._require(AuthState.CHALLENGE_ISSUED)
        transaction, _ = self._issued_challenge()

        self.deep_link = build_signing_uri(
            transaction,
            self.callback_url or "",
            scheme=self._scheme,
            return_url=return_url,
        )
        self.bot_url = None

        response = self._send("POST", "/auth/relay", json={"stellarUri": self.deep_link})
        if response is not None and response.status_code == httpx.codes.OK:
            self.bot_url = response.json().get("url")
        elif response is not None:
            logger.info("Relay unavailable, falling back to deep link: %s", _server_message(response))
        self.error = None

        self.state = AuthState.AWAITING_EXTERNAL_SIGNATURE
        self._persist()
        return self.bot_url or self.deep_link

    def check_status(self) -> AuthState:
        """Refresh from ``/auth/status``."""
        response = self._send("GET", "/auth/status")
        if response is None or response.status_code != httpx.codes.OK:
            return self.state

        payload = response.json()
        if payload.get("authenticated"):
            self.state = AuthState.AUTHENTICATED
            self.public_key = payload.get("publicKey") or self.public_key
            self.user_id = payload.get("userId")
            self.error = None
            self._persist()
            return self.state

        if self.state == AuthState.AUTHENTICATED:
            self.state = AuthState.IDLE
            self._persist()
        elif self.state == AuthState.AWAITING_EXTERNAL_SIGNATURE and self._challenge_expired():
            return self._fail("Challenge expired before it was signed")
        return self.state

    def resume(self) -> AuthState:
        """Restore a persisted attempt and re-check it against the server."""
        snapshot = self._store.load() if self._store is not None else None
        if snapshot is None:
            return self.state

        self._reset()
        try:
            self.state = AuthState(snapshot.state)
        except ValueError:
            logger.warning("Unknown persisted state %r, starting over", snapshot.state)
            return self.state
        self.public_key = snapshot.public_key
        self.user_id = snapshot.user_id
        self.transaction = snapshot.transaction
        self.network_passphrase = snapshot.network_passphrase
        self.nonce = snapshot.nonce
        self.expires_at = snapshot.expires_at
        self.callback_url = snapshot.callback_url
        self.deep_link = snapshot.deep_link
        self.bot_url = snapshot.bot_url
        self.error = snapshot.error
        if snapshot.session_token:
            self._http.cookies.set(self._cookie_name, snapshot.session_token)

        if self.state in (AuthState.AWAITING_EXTERNAL_SIGNATURE, AuthState.AUTHENTICATED):
            return self.check_status()
        return self.state

    def cancel(self) -> AuthState:
        """Abandon the attempt; an issued nonce is left to expire."""
        self._require(
            AuthState.IDLE,
            AuthState.CONNECTING,
            AuthState.CHALLENGE_ISSUED,
            AuthState.AWAITING_EXTERNAL_SIGNATURE,
            AuthState.FAILED,
        )
        self._reset()
        if self._store is not None:
            self._store.clear()
        return self.state

    def logout(self) -> AuthState:
        """End the server session and return to ``IDLE``."""
        self._send("POST", "/auth/logout")
        self._http.cookies.delete(self._cookie_name)
        self._reset()
        if self._store is not None:
            self._store.clear()
        return self.state

    def _refresh_after_verification(self) -> AuthState:
        state = self.check_status()
        if state != AuthState.AUTHENTICATED:
            return self._fail(self.error or "Server did not confirm the session")
        return state
