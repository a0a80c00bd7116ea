"""System and transparency endpoints for the Stellar Auth API."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from stellar_auth.api.v1.dependencies import ServerKeypairDep, SessionDep
from stellar_auth.core.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/system", tags=["system", "transparency"])


@router.get("/config")
async def get_public_config(server_keypair: ServerKeypairDep) -> dict[str, object]:
    """Return a sanitized snapshot of public runtime configuration.

    Excludes secrets and connection strings. Wallets can use the server
    account and home domain to check a challenge before signing it.
    """
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
            "debug": settings.debug,
        },
        "stellar": {
            "network": settings.stellar_network,
            "network_passphrase": settings.network_passphrase,
            "server_account": server_keypair.public_key,
            "home_domain": settings.home_domain,
        },
        "challenge": {
            "data_name": settings.challenge_data_name,
            "timeout_seconds": settings.challenge_timeout_seconds,
            "callback_url": settings.callback_url,
        },
        "session": {
            "cookie_name": settings.session_cookie_name,
            "ttl_seconds": settings.session_ttl_seconds,
        },
    }


@router.get("/health")
def get_system_health(db: SessionDep) -> dict[str, object]:
    """Report database connectivity along with version info."""
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        db_status = "unhealthy"

    return {
        "status": "healthy" if db_status == "healthy" else "unhealthy",
        "timestamp": int(time.time()),
        "components": {"database": db_status},
        "version": settings.app_version,
    }
