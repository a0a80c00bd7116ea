"""Persistent store for single-use challenge nonces."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stellar_auth.db.time import Clock, as_utc, utcnow
from stellar_auth.models import AuthNonce

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NonceRecord:
    """Detached snapshot of an ``auth_nonce`` row."""

    nonce: str
    public_key: str
    expires_at: datetime
    used: bool


class NonceStore:
    """Nonce lifecycle backed by the relational store.

    All state transitions are single statements so that concurrent requests
    never need application-level locks: creation is a plain insert guarded by
    the unique constraint, and consumption is a conditional update whose row
    count tells the caller whether it won.
    """

    def __init__(self, db: Session, clock: Clock = utcnow) -> None:
        self.db = db
        self._clock = clock

    def create(self, nonce: str, public_key: str, expires_at: datetime) -> bool:
        """Insert a nonce record; return False if the nonce already exists."""
        record = AuthNonce(
            nonce=nonce,
            public_key=public_key,
            expires_at=expires_at,
            created_at=self._clock(),
            used=False,
        )
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.error("Nonce collision detected; refusing to overwrite existing record")
            return False
        return True

    def find_active(self, nonce: str, public_key: str) -> NonceRecord | None:
        """Return the unexpired, unused record issued to ``public_key``, if any."""
        row = self.db.execute(
            select(AuthNonce).where(
                AuthNonce.nonce == nonce,
                AuthNonce.public_key == public_key,
                AuthNonce.used.is_(False),
                AuthNonce.expires_at > self._clock(),
            )
        ).scalar_one_or_none()
        if row is None:
            return None
        return NonceRecord(
            nonce=row.nonce,
            public_key=row.public_key,
            expires_at=as_utc(row.expires_at),
            used=row.used,
        )

    def mark_used(self, nonce: str, public_key: str) -> bool:
        """Flip ``used`` to true; True only for the caller that made the transition.

        Repeating the call on a consumed row is harmless and returns False.
        """
        result = self.db.execute(
            update(AuthNonce)
            .where(
                AuthNonce.nonce == nonce,
                AuthNonce.public_key == public_key,
                AuthNonce.used.is_(False),
                AuthNonce.expires_at > self._clock(),
            )
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

    def prune(self, older_than: datetime) -> int:
        """Delete records (used or not) that expired before ``older_than``."""
        result = self.db.execute(
            delete(AuthNonce)
            .where(AuthNonce.expires_at < older_than)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return int(result.rowcount or 0)
