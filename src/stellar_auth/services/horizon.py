"""Horizon client used to read the server account state from the Stellar network."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import httpx
from stellar_sdk import Account

from stellar_auth.core.settings import settings
from stellar_auth.services.errors import UpstreamError
from stellar_auth.services.keys import short_key

logger = logging.getLogger(__name__)

HTTP_OK = 200
HTTP_NOT_FOUND = 404


class ChainReader(Protocol):
    """Anything able to load the current state of a Stellar account."""

    async def load_account(self, account_id: str) -> Account: ...


class HorizonClient:
    """Minimal async Horizon client (``GET /accounts/{id}`` only)."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.horizon_url_resolved).rstrip("/")
        self.timeout_seconds = (
            settings.horizon_timeout_seconds if timeout_seconds is None else timeout_seconds
        )
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.base_url,
                    timeout=httpx.Timeout(self.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def load_account(self, account_id: str) -> Account:
        """Return the account with its current sequence number.

        Raises:
            UpstreamError: On network failure, non-200 response or malformed payload.
        """
        client = await self._ensure_client()
        try:
            response = await client.get(f"/accounts/{account_id}")
        except httpx.HTTPError as exc:
            logger.warning("Horizon request failed for %s: %s", short_key(account_id), exc)
            raise UpstreamError(f"Horizon request failed: {exc}") from exc

        if response.status_code == HTTP_NOT_FOUND:
            raise UpstreamError(f"Account {short_key(account_id)} not found on the network")
        if response.status_code != HTTP_OK:
            raise UpstreamError(f"Horizon responded with {response.status_code}")

        try:
            payload = response.json()
            sequence = int(payload["sequence"])
        except (ValueError, KeyError, TypeError) as exc:
            raise UpstreamError("Horizon returned a malformed account payload") from exc

        return Account(account_id, sequence)


_horizon_client: HorizonClient | None = None


def get_horizon_client() -> HorizonClient:
    """Return a process-wide Horizon client."""
    global _horizon_client
    if _horizon_client is None:
        _horizon_client = HorizonClient()
    return _horizon_client
