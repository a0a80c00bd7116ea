"""Shared API dependencies for authentication and common functionality."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from stellar_sdk import Keypair

from stellar_auth.core.settings import settings
from stellar_auth.db.session import get_db
from stellar_auth.services.challenge import ChallengeIssuer, generate_nonce
from stellar_auth.services.horizon import ChainReader, get_horizon_client
from stellar_auth.services.keys import load_server_keypair
from stellar_auth.services.nonce_store import NonceStore
from stellar_auth.services.relay import RelayClient, get_relay_client
from stellar_auth.services.session_tokens import SessionCodec, SessionData, get_session_codec
from stellar_auth.services.verifier import EnvelopeVerifier

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


@lru_cache(maxsize=1)
def get_server_keypair() -> Keypair:
    """Return the server signing keypair loaded from settings."""
    return load_server_keypair(settings.stellar_server_secret)


def get_chain_reader() -> ChainReader:
    return get_horizon_client()


def get_nonce_store(db: SessionDep) -> NonceStore:
    return NonceStore(db)


def get_session_codec_dep() -> SessionCodec:
    return get_session_codec()


def get_relay_client_dep() -> RelayClient:
    return get_relay_client()


ServerKeypairDep = Annotated[Keypair, Depends(get_server_keypair)]
ChainReaderDep = Annotated[ChainReader, Depends(get_chain_reader)]
NonceStoreDep = Annotated[NonceStore, Depends(get_nonce_store)]
SessionCodecDep = Annotated[SessionCodec, Depends(get_session_codec_dep)]
RelayClientDep = Annotated[RelayClient, Depends(get_relay_client_dep)]


def get_challenge_issuer(
    store: NonceStoreDep,
    chain: ChainReaderDep,
    server_keypair: ServerKeypairDep,
) -> ChallengeIssuer:
    """Build a challenge issuer wired to the request's database session."""
    return ChallengeIssuer(
        store=store,
        chain=chain,
        server_keypair=server_keypair,
        network_passphrase=settings.network_passphrase,
        home_domain=settings.home_domain,
        timeout_seconds=settings.challenge_timeout_seconds,
        base_fee=settings.base_fee,
        nonce_factory=lambda: generate_nonce(settings.challenge_nonce_bytes),
    )


def get_envelope_verifier(
    store: NonceStoreDep,
    server_keypair: ServerKeypairDep,
) -> EnvelopeVerifier:
    """Build an envelope verifier wired to the request's database session."""
    return EnvelopeVerifier(
        store=store,
        server_keypair=server_keypair,
        network_passphrase=settings.network_passphrase,
        home_domain=settings.home_domain,
    )


ChallengeIssuerDep = Annotated[ChallengeIssuer, Depends(get_challenge_issuer)]
EnvelopeVerifierDep = Annotated[EnvelopeVerifier, Depends(get_envelope_verifier)]


def get_current_session(request: Request, codec: SessionCodecDep) -> SessionData | None:
    """Return the session carried by the cookie, or None. Never raises."""
    return codec.read(request.cookies.get(settings.session_cookie_name))


CurrentSessionDep = Annotated[SessionData | None, Depends(get_current_session)]


def require_session(session: CurrentSessionDep) -> SessionData:
    """Return the current session or reject the request with 401.

    Raises:
        HTTPException: If no valid session cookie is present.
    """
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return session


# Type alias for authenticated session dependency
AuthenticatedSessionDep = Annotated[SessionData, Depends(require_session)]
