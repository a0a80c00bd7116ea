"""User-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserProfileResponse(BaseModel):
    """Account record for an authenticated Stellar public key."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    user_id: int = Field(..., alias="userId")
    public_key: str = Field(..., alias="publicKey", description="Stellar account id (G...)")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")
