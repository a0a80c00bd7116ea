"""Verification of dual-signed challenge envelopes."""

from __future__ import annotations

import logging

from stellar_sdk import Keypair, ManageData, TransactionEnvelope

from stellar_auth.db.time import Clock, utcnow
from stellar_auth.services.errors import (
    ValidationError,
    VerificationErrorKind,
    VerificationFailure,
    VerificationResult,
    VerifiedClaim,
)
from stellar_auth.services.keys import matching_signature_indices, short_key, validate_public_key
from stellar_auth.services.nonce_store import NonceStore
from stellar_auth.services.user_service import upsert_user

logger = logging.getLogger(__name__)

REQUIRED_SIGNATURES = 2


def _fail(kind: VerificationErrorKind, detail: str) -> VerificationFailure:
    return VerificationFailure(kind=kind, detail=detail)


class EnvelopeVerifier:
    """Validate a returned challenge and consume its nonce.

    Checks run cheapest first and the first failure wins: structure, then time
    bounds, then signatures, and only then the nonce store. Nothing about the
    envelope is trusted until every check has passed.
    """

    def __init__(
        self,
        *,
        store: NonceStore,
        server_keypair: Keypair,
        network_passphrase: str,
        home_domain: str,
        clock: Clock = utcnow,
    ) -> None:
        self.store = store
        self.server_keypair = server_keypair
        self.network_passphrase = network_passphrase
        self.data_name = f"{home_domain} auth"
        self._clock = clock

    def verify(self, envelope_xdr: str, public_key: str | None = None) -> VerificationResult:
        """Verify ``envelope_xdr`` for ``public_key``.

        When ``public_key`` is None (SEP-0007 callback) the claimant is taken
        from the operation source, which must itself be a plain account id.
        """
        claimed_key: str | None = None
        if public_key is not None:
            try:
                claimed_key = validate_public_key(public_key)
            except ValidationError as err:
                return self._reject(_fail(VerificationErrorKind.VALIDATION, str(err)), public_key)

        if not isinstance(envelope_xdr, str) or not envelope_xdr.strip():
            return self._reject(
                _fail(VerificationErrorKind.VALIDATION, "transaction is required"), claimed_key
            )

        try:
            envelope = TransactionEnvelope.from_xdr(envelope_xdr.strip(), self.network_passphrase)
        except Exception as err:  # XDR decoding raises a wide range of types
            return self._reject(
                _fail(VerificationErrorKind.MALFORMED_ENVELOPE, f"Undecodable envelope: {err}"),
                claimed_key,
            )

        transaction = envelope.transaction
        if len(transaction.operations) != 1:
            return self._reject(
                _fail(VerificationErrorKind.SHAPE, "Transaction must have exactly one operation"),
                claimed_key,
            )

        operation = transaction.operations[0]
        if not isinstance(operation, ManageData):
            return self._reject(
                _fail(VerificationErrorKind.SHAPE, "Operation must be manageData"), claimed_key
            )

        if operation.data_name != self.data_name:
            return self._reject(
                _fail(
                    VerificationErrorKind.SHAPE,
                    f"manageData name must be {self.data_name!r}, got {operation.data_name!r}",
                ),
                claimed_key,
            )

        source = operation.source
        if source is None or source.account_muxed_id is not None:
            return self._reject(
                _fail(VerificationErrorKind.SHAPE, "Operation source must be a plain account"),
                claimed_key,
            )
        if claimed_key is None:
            try:
                claimed_key = validate_public_key(source.account_id)
            except ValidationError:
                return self._reject(
                    _fail(VerificationErrorKind.SHAPE, "Operation source is not an account id"),
                    None,
                )
        elif source.account_id != claimed_key:
            return self._reject(
                _fail(VerificationErrorKind.SHAPE, "Operation source doesn't match client"),
                claimed_key,
            )

        if claimed_key == self.server_keypair.public_key:
            return self._reject(
                _fail(VerificationErrorKind.SHAPE, "Operation source is the server account"),
                claimed_key,
            )

        if not operation.data_value:
            return self._reject(
                _fail(VerificationErrorKind.SHAPE, "manageData value is empty"), claimed_key
            )
        try:
            nonce = operation.data_value.decode("ascii")
        except UnicodeDecodeError:
            return self._reject(
                _fail(VerificationErrorKind.SHAPE, "manageData value is not a nonce"), claimed_key
            )

        preconditions = transaction.preconditions
        time_bounds = preconditions.time_bounds if preconditions is not None else None
        if time_bounds is None or time_bounds.max_time == 0:
            return self._reject(
                _fail(VerificationErrorKind.SHAPE, "Transaction has no upper time bound"),
                claimed_key,
            )
        now_ts = int(self._clock().timestamp())
        if time_bounds.max_time < now_ts:
            return self._reject(
                _fail(VerificationErrorKind.EXPIRED, "Transaction expired"), claimed_key
            )

        # Identity checks come before the count so a half-signed envelope
        # reports which party is missing.
        server_matches = matching_signature_indices(envelope, self.server_keypair)
        if len(server_matches) != 1:
            return self._reject(
                _fail(VerificationErrorKind.SERVER_SIGNATURE_MISSING, "Server signature not found"),
                claimed_key,
            )

        client_keypair = Keypair.from_public_key(claimed_key)
        client_matches = matching_signature_indices(envelope, client_keypair)
        if len(client_matches) != 1 or client_matches == server_matches:
            return self._reject(
                _fail(VerificationErrorKind.CLIENT_SIGNATURE_MISSING, "Client signature not found"),
                claimed_key,
            )

        if len(envelope.signatures) != REQUIRED_SIGNATURES:
            return self._reject(
                _fail(
                    VerificationErrorKind.SHAPE,
                    f"Transaction must have exactly {REQUIRED_SIGNATURES} signatures, "
                    f"got {len(envelope.signatures)}",
                ),
                claimed_key,
            )

        if self.store.find_active(nonce, claimed_key) is None:
            return self._reject(
                _fail(
                    VerificationErrorKind.SESSION_NOT_FOUND_OR_EXPIRED,
                    "Nonce unknown, expired, already used or issued to another key",
                ),
                claimed_key,
            )

        # The conditional update is the real gate; find_active only short-circuits.
        if not self.store.mark_used(nonce, claimed_key):
            return self._reject(
                _fail(
                    VerificationErrorKind.SESSION_NOT_FOUND_OR_EXPIRED,
                    "Nonce consumed by a concurrent verification",
                ),
                claimed_key,
            )

        user_id = upsert_user(self.store.db, claimed_key, clock=self._clock)
        logger.info("Verified challenge for client: %s (user %s)", short_key(claimed_key), user_id)
        return VerifiedClaim(public_key=claimed_key, user_id=user_id)

    @staticmethod
    def _reject(failure: VerificationFailure, public_key: str | None) -> VerificationFailure:
        logger.warning(
            "Challenge verification failed for %s: %s (%s)",
            short_key(public_key) if public_key else "<unknown>",
            failure.kind.value,
            failure.detail,
        )
        return failure
