"""Helpers for managing Stellar-account users."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from stellar_auth.db.time import Clock, utcnow
from stellar_auth.models.user import User

__all__ = [
    "get_user_by_public_key",
    "upsert_user",
]

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def get_user_by_public_key(db: Session, public_key: str) -> User | None:
    """Return the user owning ``public_key``, if one exists."""
    return db.execute(
        select(User).where(User.stellar_public_key == public_key)
    ).scalar_one_or_none()


def upsert_user(db: Session, public_key: str, clock: Clock = utcnow) -> int:
    """Create the user for ``public_key`` or bump its ``updated_at``; return its id.

    Uses a single ``INSERT ... ON CONFLICT DO UPDATE`` so concurrent first-time
    verifications for the same key collapse onto one row.
    """
    dialect = db.get_bind().dialect.name
    try:
        insert = _INSERTS[dialect]
    except KeyError as err:
        raise RuntimeError(f"Unsupported database dialect for user upsert: {dialect}") from err

    now = clock()
    stmt = insert(User).values(
        stellar_public_key=public_key,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["stellar_public_key"],
        set_={"updated_at": now},
    ).returning(User.id)

    user_id = db.execute(stmt).scalar_one()
    db.commit()
    return int(user_id)
