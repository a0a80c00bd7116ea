"""Authentication-related Pydantic schemas.

Field names on the wire are camelCase to match browser wallet tooling.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ChallengeRequest(_CamelModel):
    """Request to obtain a challenge transaction for a public key."""

    public_key: str = Field(..., alias="publicKey", description="Stellar account id (G...)")


class ChallengeResponse(_CamelModel):
    """Server-signed challenge the client must co-sign."""

    transaction: str = Field(..., description="Base64 XDR transaction envelope")
    network_passphrase: str = Field(..., alias="networkPassphrase")
    nonce: str = Field(..., description="Base64 nonce embedded in the manageData value")
    expires_at: datetime = Field(..., alias="expiresAt")
    callback_url: str = Field(..., alias="callbackUrl", description="SEP-0007 callback target")


class VerifyRequest(_CamelModel):
    """Envelope co-signed in-process (browser extension path)."""

    transaction: str = Field(..., description="Dual-signed base64 XDR envelope")
    public_key: str = Field(..., alias="publicKey")


class VerifyResponse(_CamelModel):
    """Outcome of a successful verification."""

    success: bool = True
    public_key: str = Field(..., alias="publicKey")
    user_id: int = Field(..., alias="userId")


class SessionStatusResponse(_CamelModel):
    """Authentication status derived solely from the session cookie."""

    authenticated: bool
    public_key: str | None = Field(None, alias="publicKey")
    user_id: int | None = Field(None, alias="userId")


class RelayRequest(_CamelModel):
    """SEP-0007 URI to hand to the signing bot relay."""

    stellar_uri: str = Field(..., alias="stellarUri")


class RelayResponse(_CamelModel):
    """Bot URL the user should open to sign."""

    url: str


class SuccessResponse(_CamelModel):
    success: bool = True
