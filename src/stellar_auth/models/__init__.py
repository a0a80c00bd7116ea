# src/stellar_auth/models/__init__.py
"""SQLAlchemy models for the Stellar Auth service."""

from .auth_nonce import AuthNonce
from .user import User

__all__ = [
    "AuthNonce",
    "User",
]
