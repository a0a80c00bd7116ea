# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import UTC, datetime, timedelta

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from stellar_sdk import Account, Keypair, TransactionBuilder, TransactionEnvelope

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("STELLAR_SERVER_SECRET", Keypair.random().secret)
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("NONCE_PRUNE_INTERVAL_SECONDS", "0")
os.environ.setdefault("ENVIRONMENT", "test")

from stellar_auth.api.v1.dependencies import (
    get_chain_reader,
    get_relay_client_dep,
    get_server_keypair,
)
from stellar_auth.core.settings import settings
from stellar_auth.db.session import Base
from stellar_auth.db.session import get_db as app_get_session
from stellar_auth.main import app as fastapi_app
from stellar_auth.services.challenge import ChallengeIssuer
from stellar_auth.services.nonce_store import NonceStore
from stellar_auth.services.relay import RelayClient
from stellar_auth.services.verifier import EnvelopeVerifier

TEST_DB_URL = "sqlite://"
FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Mutable clock injected wherever the code under test reads the time."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeChain:
    """Chain reader returning a fixed sequence number for any account."""

    def __init__(self, sequence: int = 1_000) -> None:
        self.sequence = sequence
        self.calls: list[str] = []

    async def load_account(self, account_id: str) -> Account:
        self.calls.append(account_id)
        return Account(account_id, self.sequence)


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> Callable[[], Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory: Callable[[], Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def server_keypair() -> Keypair:
    return get_server_keypair()


@pytest.fixture()
def client_keypair() -> Keypair:
    return Keypair.random()


@pytest.fixture()
def fake_chain() -> FakeChain:
    return FakeChain()


@pytest.fixture()
def nonce_store(db_session: Session, clock: FakeClock) -> NonceStore:
    return NonceStore(db_session, clock=clock)


@pytest.fixture()
def issuer(
    nonce_store: NonceStore,
    fake_chain: FakeChain,
    server_keypair: Keypair,
    clock: FakeClock,
) -> ChallengeIssuer:
    return ChallengeIssuer(
        store=nonce_store,
        chain=fake_chain,
        server_keypair=server_keypair,
        network_passphrase=settings.network_passphrase,
        home_domain=settings.home_domain,
        clock=clock,
    )


@pytest.fixture()
def verifier(nonce_store: NonceStore, server_keypair: Keypair, clock: FakeClock) -> EnvelopeVerifier:
    return EnvelopeVerifier(
        store=nonce_store,
        server_keypair=server_keypair,
        network_passphrase=settings.network_passphrase,
        home_domain=settings.home_domain,
        clock=clock,
    )


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    session_factory: Callable[[], Session],
    fake_chain: FakeChain,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_chain_reader] = lambda: fake_chain
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_chain_reader, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def build_envelope(
    *,
    server_account_id: str,
    client_public_key: str,
    nonce: str = "A" * 64,
    data_name: str | None = None,
    min_time: int | None = None,
    max_time: int | None = None,
    signers: tuple[Keypair, ...] = (),
    extra_ops: int = 0,
) -> str:
    """Build a challenge-shaped envelope with full control over every field."""
    now = int(FIXED_NOW.timestamp())
    builder = TransactionBuilder(
        source_account=Account(server_account_id, 1_000),
        network_passphrase=settings.network_passphrase,
        base_fee=100,
    )
    for _ in range(1 + extra_ops):
        builder.append_manage_data_op(
            data_name=data_name or settings.challenge_data_name,
            data_value=nonce.encode("ascii"),
            source=client_public_key,
        )
    builder.add_time_bounds(
        now if min_time is None else min_time,
        now + 300 if max_time is None else max_time,
    )
    envelope = builder.build()
    for keypair in signers:
        envelope.sign(keypair)
    return envelope.to_xdr()


def cosign(envelope_xdr: str, keypair: Keypair) -> str:
    """Add ``keypair``'s signature the way a wallet would."""
    envelope = TransactionEnvelope.from_xdr(envelope_xdr, settings.network_passphrase)
    envelope.sign(keypair)
    return envelope.to_xdr()


@pytest.fixture()
def relay_responses(app: FastAPI) -> Iterator[list[httpx.Response]]:
    """Queue of canned relay API responses; empty queue means the relay is down."""
    queue: list[httpx.Response] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if not queue:
            raise httpx.ConnectError("relay down", request=request)
        return queue.pop(0)

    app.dependency_overrides[get_relay_client_dep] = lambda: RelayClient(
        "https://relay.test/add", transport=httpx.MockTransport(handler)
    )
    try:
        yield queue
    finally:
        app.dependency_overrides.pop(get_relay_client_dep, None)
