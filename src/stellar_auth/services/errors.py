"""Failure taxonomy for the authentication protocol.

Issuance failures are raised as exceptions deriving from :class:`AuthError`.
Verification failures are returned as :class:`VerificationFailure` values whose
``kind`` is drawn from the closed :class:`VerificationErrorKind` enum. Every
kind maps onto exactly one public :class:`ErrorClass`, which is all a caller
ever learns about why an envelope was rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AuthError(RuntimeError):
    """Base exception raised by the authentication services."""


class ValidationError(AuthError, ValueError):
    """Raised when caller input (public key, required field) is malformed."""


class NonceCollisionError(AuthError):
    """Raised when a freshly generated nonce already exists in the store."""


class UpstreamError(AuthError):
    """Raised when a chain read or relay request fails; retryable by the caller."""


class ErrorClass(str, Enum):
    """Public failure classes surfaced at the HTTP boundary."""

    VALIDATION = "validation"
    INVALID_TRANSACTION = "invalid_transaction"
    INVALID_OR_EXPIRED = "invalid_or_expired"
    UPSTREAM = "upstream"


class VerificationErrorKind(str, Enum):
    """Every reason an envelope verification can fail."""

    VALIDATION = "validation_error"
    MALFORMED_ENVELOPE = "malformed_envelope"
    SHAPE = "shape_error"
    EXPIRED = "expired"
    SERVER_SIGNATURE_MISSING = "server_signature_missing"
    CLIENT_SIGNATURE_MISSING = "client_signature_missing"
    SESSION_NOT_FOUND_OR_EXPIRED = "session_not_found_or_expired"


ERROR_CLASS_BY_KIND: dict[VerificationErrorKind, ErrorClass] = {
    VerificationErrorKind.VALIDATION: ErrorClass.VALIDATION,
    VerificationErrorKind.MALFORMED_ENVELOPE: ErrorClass.INVALID_TRANSACTION,
    VerificationErrorKind.SHAPE: ErrorClass.INVALID_TRANSACTION,
    VerificationErrorKind.SERVER_SIGNATURE_MISSING: ErrorClass.INVALID_TRANSACTION,
    VerificationErrorKind.CLIENT_SIGNATURE_MISSING: ErrorClass.INVALID_TRANSACTION,
    VerificationErrorKind.EXPIRED: ErrorClass.INVALID_OR_EXPIRED,
    VerificationErrorKind.SESSION_NOT_FOUND_OR_EXPIRED: ErrorClass.INVALID_OR_EXPIRED,
}

PUBLIC_MESSAGES: dict[ErrorClass, str] = {
    ErrorClass.VALIDATION: "Invalid request",
    ErrorClass.INVALID_TRANSACTION: "Invalid transaction",
    ErrorClass.INVALID_OR_EXPIRED: "Invalid or expired auth session",
    ErrorClass.UPSTREAM: "Upstream service unavailable, please retry",
}


@dataclass(frozen=True)
class VerificationFailure:
    """Rejected envelope; ``detail`` is for server-side logs only."""

    kind: VerificationErrorKind
    detail: str

    @property
    def error_class(self) -> ErrorClass:
        return ERROR_CLASS_BY_KIND[self.kind]

    @property
    def public_message(self) -> str:
        if self.kind is VerificationErrorKind.VALIDATION:
            # Input validation messages are safe to show verbatim.
            return self.detail
        return PUBLIC_MESSAGES[self.error_class]


@dataclass(frozen=True)
class VerifiedClaim:
    """Public key proven by a dual-signed envelope, with its user row id."""

    public_key: str
    user_id: int


VerificationResult = VerifiedClaim | VerificationFailure
