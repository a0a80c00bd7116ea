# src/stellar_auth/api/v1/endpoints/auth.py
"""Authentication endpoints for the Stellar Auth API."""

from __future__ import annotations

import asyncio
import json
import logging
from urllib.parse import parse_qs

from fastapi import APIRouter, HTTPException, Request, Response, status

from stellar_auth.api.v1.dependencies import (
    ChallengeIssuerDep,
    CurrentSessionDep,
    EnvelopeVerifierDep,
    RelayClientDep,
    SessionCodecDep,
)
from stellar_auth.core.settings import settings
from stellar_auth.schemas.auth import (
    ChallengeRequest,
    ChallengeResponse,
    RelayRequest,
    RelayResponse,
    SessionStatusResponse,
    SuccessResponse,
    VerifyRequest,
    VerifyResponse,
)
from stellar_auth.sep7 import validate_signing_uri
from stellar_auth.services.errors import (
    PUBLIC_MESSAGES,
    ErrorClass,
    NonceCollisionError,
    UpstreamError,
    ValidationError,
    VerificationFailure,
    VerificationResult,
)
from stellar_auth.services.session_tokens import SessionCodec

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def _error_detail(message: str, error_class: ErrorClass | str) -> dict[str, str]:
    reason = error_class.value if isinstance(error_class, ErrorClass) else error_class
    return {"error": message, "reason": reason}


def _verification_error(failure: VerificationFailure) -> HTTPException:
    detail = _error_detail(failure.public_message, failure.error_class)
    if settings.auth_debug_reasons:
        detail["kind"] = failure.kind.value
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_ttl_seconds,
        path="/",
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


def _complete_verification(
    result: VerificationResult,
    response: Response,
    codec: SessionCodec,
) -> VerifyResponse:
    """Mint the session for a verified claim, or map the failure to a 400."""
    if isinstance(result, VerificationFailure):
        raise _verification_error(result)

    token = codec.issue(result.public_key, result.user_id)
    _set_session_cookie(response, token)
    return VerifyResponse(public_key=result.public_key, user_id=result.user_id)


async def _extract_callback_xdr(request: Request) -> str | None:
    """Find the signed envelope in the query string, a JSON body or a form body."""
    xdr = request.query_params.get("xdr")
    if xdr:
        return xdr
    if request.method != "POST":
        return None

    raw = await request.body()
    if not raw:
        return None

    content_type = request.headers.get("content-type", "")
    if "application/x-www-form-urlencoded" in content_type:
        values = parse_qs(raw.decode("utf-8", errors="replace")).get("xdr")
        return values[0] if values else None

    try:
        body = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    value = body.get("xdr") or body.get("transaction")
    return value if isinstance(value, str) else None


@router.post(
    "/challenge",
    summary="Issue a server-signed challenge transaction",
    response_model=ChallengeResponse,
)
async def issue_challenge(
    payload: ChallengeRequest,
    issuer: ChallengeIssuerDep,
) -> ChallengeResponse:
    """Build a manageData challenge bound to ``publicKey`` and sign it."""
    try:
        challenge = await issuer.issue(payload.public_key)
    except ValidationError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_detail(str(err), ErrorClass.VALIDATION),
        ) from err
    except UpstreamError as err:
        logger.warning("Challenge generation failed upstream: %s", err)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=_error_detail(PUBLIC_MESSAGES[ErrorClass.UPSTREAM], ErrorClass.UPSTREAM),
        ) from err
    except NonceCollisionError as err:
        logger.error("Challenge generation aborted: %s", err)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_error_detail("Failed to generate challenge, please retry", "nonce_collision"),
        ) from err

    return ChallengeResponse(
        transaction=challenge.envelope,
        network_passphrase=challenge.network_passphrase,
        nonce=challenge.nonce,
        expires_at=challenge.expires_at,
        callback_url=settings.callback_url,
    )


@router.post(
    "/verify",
    summary="Verify a challenge co-signed in-process",
    response_model=VerifyResponse,
)
def verify_challenge(
    payload: VerifyRequest,
    response: Response,
    verifier: EnvelopeVerifierDep,
    codec: SessionCodecDep,
) -> VerifyResponse:
    """Verify a dual-signed envelope for ``publicKey`` and start a session."""
    result = verifier.verify(payload.transaction, payload.public_key)
    return _complete_verification(result, response, codec)


@router.api_route(
    "/callback",
    methods=["GET", "POST"],
    summary="SEP-0007 callback for external signers",
    response_model=VerifyResponse,
)
async def signer_callback(
    request: Request,
    response: Response,
    verifier: EnvelopeVerifierDep,
    codec: SessionCodecDep,
) -> VerifyResponse:
    """Verify an envelope posted back by a wallet or signing bot.

    The claimant is the operation source of the envelope itself.
    """
    xdr = await _extract_callback_xdr(request)
    if not xdr:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_detail("xdr parameter is required", ErrorClass.VALIDATION),
        )

    result = await asyncio.to_thread(verifier.verify, xdr, None)
    return _complete_verification(result, response, codec)


@router.get(
    "/status",
    summary="Report the authentication state of the session cookie",
    response_model=SessionStatusResponse,
)
def session_status(session: CurrentSessionDep) -> SessionStatusResponse:
    if session is None:
        return SessionStatusResponse(authenticated=False)
    return SessionStatusResponse(
        authenticated=True,
        public_key=session.public_key,
        user_id=session.user_id,
    )


@router.post(
    "/logout",
    summary="Clear the session cookie",
    response_model=SuccessResponse,
)
def logout(response: Response) -> SuccessResponse:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
    return SuccessResponse()


@router.post(
    "/relay",
    summary="Hand a SEP-0007 link to the signing bot relay",
    response_model=RelayResponse,
)
async def relay_signing_uri(
    payload: RelayRequest,
    relay: RelayClientDep,
) -> RelayResponse:
    """Return a signing-bot URL for the given transaction request."""
    try:
        uri = validate_signing_uri(payload.stellar_uri, scheme=settings.deep_link_scheme)
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_detail(str(err), ErrorClass.VALIDATION),
        ) from err

    try:
        url = await relay.submit(uri)
    except UpstreamError as err:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=_error_detail(str(err), ErrorClass.UPSTREAM),
        ) from err

    logger.info("Relayed signing request to bot")
    return RelayResponse(url=url)

