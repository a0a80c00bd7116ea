# src/stellar_auth/services/__init__.py
"""Business logic services for the Stellar Auth service."""

from .challenge import ChallengeIssuer, IssuedChallenge
from .nonce_store import NonceRecord, NonceStore
from .session_tokens import SessionCodec, SessionData
from .verifier import EnvelopeVerifier

__all__ = [
    "ChallengeIssuer",
    "IssuedChallenge",
    "NonceStore",
    "NonceRecord",
    "SessionCodec",
    "SessionData",
    "EnvelopeVerifier",
]
