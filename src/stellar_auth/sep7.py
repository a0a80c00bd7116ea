"""SEP-0007 transaction-request URIs.

Pure string helpers shared by the server relay endpoint and the client
orchestrator; nothing here touches keys, storage or the network.
"""

from __future__ import annotations

from urllib.parse import quote

DEFAULT_SCHEME = "web+stellar"


def build_signing_uri(
    envelope: str,
    callback_url: str,
    *,
    scheme: str = DEFAULT_SCHEME,
    return_url: str | None = None,
) -> str:
    """Return ``<scheme>:tx?xdr=<envelope>&callback=url:<callback>``.

    Both the envelope and the callback are percent-encoded; ``return_url`` is
    appended when the signer should send the user back to a page.
    """
    uri = f"{scheme}:tx?xdr={quote(envelope, safe='')}&callback=url:{quote(callback_url, safe='')}"
    if return_url:
        uri = f"{uri}&return_url={quote(return_url, safe='')}"
    return uri


def validate_signing_uri(uri: object, *, scheme: str = DEFAULT_SCHEME) -> str:
    """Return ``uri`` stripped if it is a transaction request for ``scheme``.

    Raises:
        ValueError: If the value is empty or uses another scheme.
    """
    if not isinstance(uri, str) or not uri.strip():
        raise ValueError("Stellar URI is required")
    cleaned = uri.strip()
    if not cleaned.startswith(f"{scheme}:"):
        raise ValueError("Invalid Stellar URI format")
    return cleaned
