"""Relay of SEP-0007 deep links to an external signing bot.

The ``web+stellar:tx`` URI built by :mod:`stellar_auth.sep7` can be opened
directly by a wallet, or submitted to the relay API, which returns a link into
a signing bot. Either way the signer posts the signed envelope back to the
callback endpoint; nothing here waits for it.
"""

from __future__ import annotations

import logging

import httpx

from stellar_auth.core.settings import settings
from stellar_auth.services.errors import UpstreamError

logger = logging.getLogger(__name__)

FALLBACK_HINT = (
    "Please try signing the transaction manually using the SEP-0007 link instead."
)


class RelayClient:
    """Client for the signing-bot relay API."""

    def __init__(
        self,
        api_url: str | None = None,
        *,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_url = api_url or settings.relay_api_url
        self.timeout_seconds = (
            settings.relay_timeout_seconds if timeout_seconds is None else timeout_seconds
        )
        self._transport = transport

    async def submit(self, uri: str) -> str:
        """Register ``uri`` with the relay and return the bot URL.

        Raises:
            UpstreamError: If the relay is unreachable, rejects the request or
                returns no URL. The message always points at the direct link.
        """
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_seconds),
            transport=self._transport,
        ) as client:
            try:
                response = await client.post(self.api_url, json={"uri": uri})
            except httpx.HTTPError as exc:
                logger.warning("Relay request failed: %s", exc)
                raise UpstreamError(f"Signing bot relay unreachable. {FALLBACK_HINT}") from exc

        if not response.is_success:
            logger.warning("Relay API error (%s): %s", response.status_code, response.text[:200])
            raise UpstreamError(
                f"Signing bot relay unavailable ({response.status_code}). {FALLBACK_HINT}"
            )

        try:
            url = response.json().get("url")
        except (ValueError, AttributeError) as exc:
            raise UpstreamError(
                f"Signing bot relay returned an invalid response. {FALLBACK_HINT}"
            ) from exc
        if not url or not isinstance(url, str):
            raise UpstreamError(f"No URL returned from the signing bot relay. {FALLBACK_HINT}")
        return url


def get_relay_client() -> RelayClient:
    """Return a relay client configured from settings."""
    return RelayClient()
