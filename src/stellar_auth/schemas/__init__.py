"""Pydantic schemas for the Stellar Auth API."""

from .auth import (
    ChallengeRequest,
    ChallengeResponse,
    RelayRequest,
    RelayResponse,
    SessionStatusResponse,
    SuccessResponse,
    VerifyRequest,
    VerifyResponse,
)
from .user import UserProfileResponse

__all__ = [
    "ChallengeRequest",
    "ChallengeResponse",
    "RelayRequest",
    "RelayResponse",
    "SessionStatusResponse",
    "SuccessResponse",
    "UserProfileResponse",
    "VerifyRequest",
    "VerifyResponse",
]
