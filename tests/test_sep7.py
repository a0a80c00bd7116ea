# tests/test_sep7.py
"""Tests for SEP-0007 transaction-request URIs."""

from urllib.parse import unquote

import pytest

from stellar_auth.sep7 import build_signing_uri, validate_signing_uri

ENVELOPE = "AAAAAgAAAAB+abc/def=="
CALLBACK = "https://auth.example.org/api/v1/auth/callback"


def test_build_signing_uri_encodes_parts() -> None:
    uri = build_signing_uri(ENVELOPE, CALLBACK)

    assert uri.startswith("web+stellar:tx?xdr=")
    xdr_part, callback_part = uri.split("?", 1)[1].split("&")
    assert "/" not in xdr_part and "+" not in xdr_part
    assert unquote(xdr_part.removeprefix("xdr=")) == ENVELOPE
    assert callback_part.startswith("callback=url:")
    assert unquote(callback_part.removeprefix("callback=url:")) == CALLBACK


def test_build_signing_uri_with_return_url_and_scheme() -> None:
    uri = build_signing_uri(ENVELOPE, CALLBACK, scheme="testnet+stellar", return_url="https://x.test/")

    assert uri.startswith("testnet+stellar:tx?")
    assert uri.endswith("&return_url=https%3A%2F%2Fx.test%2F")


def test_validate_signing_uri_accepts_and_strips() -> None:
    assert validate_signing_uri("  web+stellar:tx?xdr=AAAA ") == "web+stellar:tx?xdr=AAAA"


@pytest.mark.parametrize(
    ("value", "message"),
    [
        (None, "Stellar URI is required"),
        ("   ", "Stellar URI is required"),
        ("stellar:tx?xdr=AAAA", "Invalid Stellar URI format"),
        ("https://example.org/?uri=web+stellar:tx", "Invalid Stellar URI format"),
    ],
)
def test_validate_signing_uri_rejects(value, message) -> None:
    with pytest.raises(ValueError, match=message):
        validate_signing_uri(value)
