"""Unit tests for the ORM models defined in stellar_auth.models.

These tests verify basic mapping correctness: table names, unique
constraints and defaults the nonce lifecycle relies on.
"""

from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from stellar_auth.models import AuthNonce, User
from tests.conftest import FIXED_NOW


def test_table_names():
    """Model classes expose expected __tablename__ values."""
    assert AuthNonce.__tablename__ == "auth_nonce"
    assert User.__tablename__ == "app_user"


def test_unique_columns():
    assert AuthNonce.__table__.c.nonce.unique is True
    assert User.__table__.c.stellar_public_key.unique is True


def test_expiry_is_indexed():
    index_names = {index.name for index in AuthNonce.__table__.indexes}
    assert "ix_auth_nonce_expires_at" in index_names


def test_new_nonce_defaults_to_unused(db_session):
    row = AuthNonce(nonce="n", public_key="G" * 56, expires_at=FIXED_NOW + timedelta(minutes=5))
    db_session.add(row)
    db_session.commit()

    assert row.used is False
    assert row.created_at is not None


def test_duplicate_public_key_is_rejected(db_session):
    db_session.add(User(stellar_public_key="G" * 56))
    db_session.commit()
    db_session.add(User(stellar_public_key="G" * 56))

    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()
