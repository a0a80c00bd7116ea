# tests/v1/test_system.py
"""Tests for system and transparency endpoints."""

from fastapi import status
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from stellar_auth.core.settings import settings
from stellar_auth.db.session import get_db


def test_system_config(client: TestClient, server_keypair) -> None:
    """Public config exposes what a wallet needs to check a challenge."""
    r = client.get("/api/v1/system/config")
    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert data["stellar"]["server_account"] == server_keypair.public_key
    assert data["stellar"]["network_passphrase"] == settings.network_passphrase
    assert data["challenge"]["data_name"] == f"{settings.home_domain} auth"
    assert settings.secret_key not in r.text
    assert settings.stellar_server_secret not in r.text


def test_system_health(client: TestClient) -> None:
    r = client.get("/api/v1/system/health")
    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert data["status"] == "healthy"
    assert data["components"]["database"] == "healthy"


class _BrokenSession:
    def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("password authentication failed for user app"))


def test_system_health_hides_database_errors(app, client: TestClient) -> None:
    app.dependency_overrides[get_db] = lambda: _BrokenSession()

    r = client.get("/api/v1/system/health")

    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert data["status"] == "unhealthy"
    assert data["components"]["database"] == "unhealthy"
    assert "password" not in r.text
