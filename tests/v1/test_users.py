# tests/v1/test_users.py
"""Tests for session-backed user endpoints."""

from __future__ import annotations

from fastapi import status
from stellar_sdk import Keypair

from tests.conftest import cosign


def test_me_requires_session(client) -> None:
    response = client.get("/api/v1/users/me")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["detail"] == "Not authenticated"


def test_me_returns_the_authenticated_user(client) -> None:
    keypair = Keypair.random()
    challenge = client.post("/api/v1/auth/challenge", json={"publicKey": keypair.public_key}).json()
    verified = client.post(
        "/api/v1/auth/verify",
        json={"transaction": cosign(challenge["transaction"], keypair), "publicKey": keypair.public_key},
    ).json()

    response = client.get("/api/v1/users/me")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["userId"] == verified["userId"]
    assert data["publicKey"] == keypair.public_key
    assert "createdAt" in data and "updatedAt" in data
