# src/stellar_auth/models/auth_nonce.py
"""Models backing single-use challenge nonces."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, false
from sqlalchemy.orm import Mapped, mapped_column

from stellar_auth.db.session import Base
from stellar_auth.db.time import utcnow


class AuthNonce(Base):
    """Challenge nonce issued to a claimed public key.

    A row is consumable exactly once: ``used`` flips from false to true in a
    single conditional update and never flips back.
    """

    __tablename__ = "auth_nonce"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    nonce: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    public_key: Mapped[str] = mapped_column(String(56), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    used: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )

    __table_args__ = (Index("ix_auth_nonce_expires_at", "expires_at"),)
