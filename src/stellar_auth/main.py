# src/stellar_auth/main.py
"""Main entry point for the Stellar Auth application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from stellar_auth.api.v1 import auth_router, system_router, users_router
from stellar_auth.core.settings import settings
from stellar_auth.db.session import create_tables
from stellar_auth.services.errors import ErrorClass
from stellar_auth.services.horizon import get_horizon_client
from stellar_auth.services.pruning import NoncePruneWorker

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("stellar_auth")

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Passwordless authentication with Stellar keypairs",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query")]
    field = ".".join(loc) or "request"
    if first.get("type") == "missing":
        return f"{field} is required"
    return f"{field}: {first.get('msg', 'invalid value')}"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies as 400 validation errors."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": {
                "error": _describe_validation_error(exc),
                "reason": ErrorClass.VALIDATION.value,
            }
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": {"error": "Internal server error", "reason": "internal"}},
    )


@app.on_event("startup")
async def on_startup() -> None:
    create_tables()
    worker = NoncePruneWorker()
    await worker.start()
    app.state.prune_worker = worker


@app.on_event("shutdown")
async def on_shutdown() -> None:
    worker: NoncePruneWorker | None = getattr(app.state, "prune_worker", None)
    if worker:
        await worker.stop()
    await get_horizon_client().close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Passwordless authentication with Stellar keypairs",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("stellar_auth.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
