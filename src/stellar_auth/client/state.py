"""On-disk persistence for an in-flight client login.

A hand-off to an external signer can outlive the process that started it, so
the orchestrator writes its progress to a small JSON file and reads it back on
``resume``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)


class PersistedAuthState(BaseModel):
    """Snapshot of an orchestrator between process runs."""

    state: str
    public_key: str | None = None
    transaction: str | None = None
    network_passphrase: str | None = None
    nonce: str | None = None
    expires_at: datetime | None = None
    callback_url: str | None = None
    deep_link: str | None = None
    bot_url: str | None = None
    session_token: str | None = None
    user_id: int | None = None
    error: str | None = None


class StateStore:
    """JSON file holding at most one :class:`PersistedAuthState`."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> PersistedAuthState | None:
        """Return the saved snapshot, or None when absent or unreadable."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            return PersistedAuthState.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("Ignoring corrupt auth state file %s: %s", self.path, exc)
            return None

    def save(self, snapshot: PersistedAuthState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
        tmp.replace(self.path)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
