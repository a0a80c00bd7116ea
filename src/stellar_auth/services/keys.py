"""Stellar key helpers shared by the challenge issuer and the verifier."""

from __future__ import annotations

from stellar_sdk import Keypair, TransactionEnvelope
from stellar_sdk.exceptions import BadSignatureError

from stellar_auth.services.errors import ValidationError

PUBLIC_KEY_PREFIX = "G"
PUBLIC_KEY_LENGTH = 56


def validate_public_key(public_key: object) -> str:
    """Validate a Stellar account id (``G...`` strkey) and return it stripped.

    The prefix and length are checked before the strkey checksum so obviously
    malformed input never reaches the decoder.

    Raises:
        ValidationError: If the value is not a well-formed ed25519 public key.
    """
    if not isinstance(public_key, str) or not public_key.strip():
        raise ValidationError("publicKey is required")

    cleaned = public_key.strip()
    if not cleaned.startswith(PUBLIC_KEY_PREFIX) or len(cleaned) != PUBLIC_KEY_LENGTH:
        raise ValidationError("Invalid public key format")

    try:
        Keypair.from_public_key(cleaned)
    except ValueError as err:
        raise ValidationError("Invalid public key format") from err
    return cleaned


def short_key(public_key: str) -> str:
    """Return a truncated public key for log lines."""
    return f"{public_key[:8]}..."


def load_server_keypair(secret: str) -> Keypair:
    """Load the server signing keypair from its ``S...`` secret seed."""
    try:
        return Keypair.from_secret(secret.strip())
    except ValueError as err:
        raise ValueError("STELLAR_SERVER_SECRET is not a valid Stellar secret seed") from err


def matching_signature_indices(envelope: TransactionEnvelope, keypair: Keypair) -> list[int]:
    """Return the positions of envelope signatures that verify against ``keypair``.

    Every signature is checked over the envelope's signing hash; hints are
    ignored because they are attacker-controlled.
    """
    tx_hash = envelope.hash()
    matches = []
    for index, decorated in enumerate(envelope.signatures):
        try:
            keypair.verify(tx_hash, decorated.signature)
        except (BadSignatureError, ValueError):
            continue
        matches.append(index)
    return matches
