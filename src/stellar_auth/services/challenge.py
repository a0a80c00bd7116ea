"""Challenge issuance: server-signed ManageData transactions carrying a nonce."""

from __future__ import annotations

import asyncio
import base64
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from stellar_sdk import Keypair, TransactionBuilder

from stellar_auth.db.time import Clock, utcnow
from stellar_auth.services.errors import NonceCollisionError, ValidationError
from stellar_auth.services.horizon import ChainReader
from stellar_auth.services.keys import short_key, validate_public_key
from stellar_auth.services.nonce_store import NonceStore

logger = logging.getLogger(__name__)

DEFAULT_NONCE_BYTES = 48
DEFAULT_CHALLENGE_TIMEOUT_SECONDS = 300
DEFAULT_BASE_FEE = 100


def generate_nonce(num_bytes: int = DEFAULT_NONCE_BYTES) -> str:
    """Return ``num_bytes`` of CSPRNG output, base64-encoded.

    48 bytes encode to exactly 64 characters, the ManageData value limit.
    """
    return base64.b64encode(secrets.token_bytes(num_bytes)).decode("ascii")


@dataclass(frozen=True)
class IssuedChallenge:
    """Serialized challenge returned to the claimant."""

    envelope: str
    network_passphrase: str
    nonce: str
    expires_at: datetime


class ChallengeIssuer:
    """Build, persist and sign authentication challenges.

    Every collaborator is injected so the issuer can be exercised without a
    network or a real clock.
    """

    def __init__(
        self,
        *,
        store: NonceStore,
        chain: ChainReader,
        server_keypair: Keypair,
        network_passphrase: str,
        home_domain: str,
        timeout_seconds: int = DEFAULT_CHALLENGE_TIMEOUT_SECONDS,
        base_fee: int = DEFAULT_BASE_FEE,
        clock: Clock = utcnow,
        nonce_factory: Callable[[], str] = generate_nonce,
    ) -> None:
        self.store = store
        self.chain = chain
        self.server_keypair = server_keypair
        self.network_passphrase = network_passphrase
        self.data_name = f"{home_domain} auth"
        self.timeout_seconds = timeout_seconds
        self.base_fee = base_fee
        self._clock = clock
        self._nonce_factory = nonce_factory

    async def issue(self, public_key: str) -> IssuedChallenge:
        """Issue a challenge for ``public_key``.

        Raises:
            ValidationError: If ``public_key`` is not a valid account id or is
                the server account.
            UpstreamError: If the server account cannot be loaded.
            NonceCollisionError: If the generated nonce already exists.
        """
        client_key = validate_public_key(public_key)
        if client_key == self.server_keypair.public_key:
            raise ValidationError("publicKey must not be the server account")

        server_account = await self.chain.load_account(self.server_keypair.public_key)

        nonce = self._nonce_factory()
        now = self._clock()
        expires_at = now + timedelta(seconds=self.timeout_seconds)
        created = await asyncio.to_thread(self.store.create, nonce, client_key, expires_at)
        if not created:
            raise NonceCollisionError("Generated challenge nonce already exists")

        min_time = int(now.timestamp())
        max_time = int(expires_at.timestamp())
        envelope = (
            TransactionBuilder(
                source_account=server_account,
                network_passphrase=self.network_passphrase,
                base_fee=self.base_fee,
            )
            .append_manage_data_op(
                data_name=self.data_name,
                data_value=nonce.encode("ascii"),
                source=client_key,
            )
            .add_time_bounds(min_time, max_time)
            .build()
        )
        envelope.sign(self.server_keypair)

        logger.info("Generated challenge for client: %s", short_key(client_key))
        return IssuedChallenge(
            envelope=envelope.to_xdr(),
            network_passphrase=self.network_passphrase,
            nonce=nonce,
            expires_at=expires_at,
        )
