# src/stellar_auth/client/__init__.py
"""Client-side login orchestration (talks to the API over HTTP only)."""

from .orchestrator import (
    AuthOrchestrator,
    AuthState,
    ExtensionSigner,
    InvalidTransitionError,
    KeySource,
    LocalKeypairSigner,
    SigningRejectedError,
    is_valid_public_key_format,
)
from .state import PersistedAuthState, StateStore

__all__ = [
    "AuthOrchestrator",
    "AuthState",
    "ExtensionSigner",
    "InvalidTransitionError",
    "KeySource",
    "LocalKeypairSigner",
    "PersistedAuthState",
    "SigningRejectedError",
    "StateStore",
    "is_valid_public_key_format",
]
