# tests/v1/test_dependencies.py
"""Tests for API dependencies module."""

import pytest
from fastapi import HTTPException, status
from starlette.requests import Request

from stellar_auth.api.v1.dependencies import get_current_session, require_session
from stellar_auth.core.settings import settings
from stellar_auth.services.session_tokens import SessionCodec, SessionData

PUBLIC_KEY = "GAAZI4TCR3TY5OJHCTJC2A4QSY6CJWJH5IAJTGKIN2ER7LBNVKOCCWN7"


def _request(cookie: str | None = None) -> Request:
    headers = []
    if cookie is not None:
        headers.append((b"cookie", f"{settings.session_cookie_name}={cookie}".encode()))
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers})


class TestGetCurrentSession:
    """Test reading the session from the cookie."""

    def test_no_cookie(self):
        codec = SessionCodec("k")
        assert get_current_session(_request(), codec) is None

    def test_valid_cookie(self):
        codec = SessionCodec("k")
        session = get_current_session(_request(codec.issue(PUBLIC_KEY, 3)), codec)
        assert session is not None
        assert session.public_key == PUBLIC_KEY
        assert session.user_id == 3

    def test_cookie_from_other_secret(self):
        token = SessionCodec("other").issue(PUBLIC_KEY, 3)
        assert get_current_session(_request(token), SessionCodec("k")) is None


class TestRequireSession:
    """Test the authenticated-session guard."""

    def test_passes_session_through(self):
        session = SessionData(public_key=PUBLIC_KEY, user_id=1, created_at=0)
        assert require_session(session) is session

    def test_rejects_missing_session(self):
        with pytest.raises(HTTPException) as exc_info:
            require_session(None)
        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED
        assert exc_info.value.detail == "Not authenticated"
