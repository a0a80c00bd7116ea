"""Retention of spent and expired challenge nonces.

Nonce rows are never deleted by the protocol itself. This module removes rows
that expired more than ``NONCE_RETENTION_SECONDS`` ago, either from a
background loop inside the API process or from the one-shot cron script.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stellar_auth.core.settings import settings
from stellar_auth.db.session import SessionLocal
from stellar_auth.db.time import utcnow
from stellar_auth.services.nonce_store import NonceStore

logger = logging.getLogger(__name__)


def prune_expired_nonces(
    db: Session,
    *,
    now: datetime | None = None,
    retention_seconds: int | None = None,
) -> int:
    """Delete nonce rows whose expiry lies further back than the retention window."""
    now = now or utcnow()
    retention = settings.nonce_retention_seconds if retention_seconds is None else retention_seconds
    cutoff = now - timedelta(seconds=max(0, retention))
    removed = NonceStore(db, clock=lambda: now).prune(cutoff)
    if removed:
        logger.info("Pruned %d challenge nonces that expired before %s", removed, cutoff.isoformat())
    return removed


class NoncePruneWorker:
    """Periodically prunes the nonce table in the background."""

    def __init__(
        self,
        interval_seconds: float | None = None,
        session_factory: Callable[[], Session] = SessionLocal,
    ) -> None:
        self.interval_seconds = (
            settings.nonce_prune_interval_seconds if interval_seconds is None else interval_seconds
        )
        self._session_factory = session_factory
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def enabled(self) -> bool:
        return self.interval_seconds > 0

    async def start(self) -> None:
        """Start the background pruning loop."""
        if not self.enabled:
            return

        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background pruning loop."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    def run_once(self) -> int:
        db = self._session_factory()
        try:
            return prune_expired_nonces(db)
        finally:
            db.close()

    async def _run(self) -> None:
        interval = max(1.0, float(self.interval_seconds))

        while True:
            try:
                await asyncio.to_thread(self.run_once)
            except SQLAlchemyError as e:
                logger.warning("NoncePruneWorker encountered database error: %s", e)

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=interval)
            except TimeoutError:
                continue
            return
