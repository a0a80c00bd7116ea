# tests/services/test_relay.py
"""Tests for the signing-bot relay client."""

from __future__ import annotations

import json

import httpx
import pytest

from stellar_auth.services.errors import UpstreamError
from stellar_auth.services.relay import FALLBACK_HINT, RelayClient

URI = "web+stellar:tx?xdr=AAAA&callback=url%3Ahttps%3A%2F%2Fexample.org%2Fcb"


def _relay(handler) -> RelayClient:
    return RelayClient("https://relay.test/add", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_submit_posts_uri_and_returns_bot_url() -> None:
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"url": "https://t.me/signing_bot?start=abc"})

    url = await _relay(handler).submit(URI)

    assert url == "https://t.me/signing_bot?start=abc"
    assert captured["body"] == {"uri": URI}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(502, text="bad gateway"),
        httpx.Response(200, json={}),
        httpx.Response(200, json={"url": ""}),
        httpx.Response(200, text="<html>"),
    ],
)
async def test_relay_failures_suggest_direct_link(response: httpx.Response) -> None:
    with pytest.raises(UpstreamError) as excinfo:
        await _relay(lambda request: response).submit(URI)

    assert FALLBACK_HINT in str(excinfo.value)


@pytest.mark.asyncio
async def test_unreachable_relay_suggests_direct_link() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(UpstreamError, match="unreachable"):
        await _relay(handler).submit(URI)
