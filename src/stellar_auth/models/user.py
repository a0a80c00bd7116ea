# src/stellar_auth/models/user.py
"""SQLAlchemy models for Stellar-account user identities."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from stellar_auth.db.session import Base
from stellar_auth.db.time import utcnow


class User(Base):
    """User identity keyed by a verified Stellar public key."""

    __tablename__ = "app_user"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    stellar_public_key: Mapped[str] = mapped_column(String(56), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )