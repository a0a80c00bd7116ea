"""User endpoints backed by the session cookie."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from stellar_auth.api.v1.dependencies import AuthenticatedSessionDep, SessionDep
from stellar_auth.schemas.user import UserProfileResponse
from stellar_auth.services.user_service import get_user_by_public_key

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserProfileResponse)
def read_current_user(session: AuthenticatedSessionDep, db: SessionDep) -> UserProfileResponse:
    """Return the account behind the current session."""
    user = get_user_by_public_key(db, session.public_key)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return UserProfileResponse(
        user_id=user.id,
        public_key=user.stellar_public_key,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )
