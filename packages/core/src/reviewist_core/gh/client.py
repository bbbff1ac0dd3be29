from __future__ import annotations

import httpx

from reviewist_core.errors import TransportError, TransportErrorKind

DEFAULT_TIMEOUT = 30.0


def build_http_client(token: str, timeout: float = DEFAULT_TIMEOUT, transport=None) -> httpx.AsyncClient:
    """Return an AsyncClient that authenticates every request against the GitHub API."""
    return httpx.AsyncClient(
        headers={
            "Authorization": f"token {token}",
            "Accept": "application/vnd.github+json",
        },
        timeout=httpx.Timeout(timeout),
        transport=transport,
    )


def transport_error(exc: httpx.HTTPError, url: str) -> TransportError:
    """Classify an httpx failure into a TransportError of the matching kind."""
    if isinstance(exc, httpx.TimeoutException):
        kind = TransportErrorKind.TIMEOUT
    elif isinstance(exc, (httpx.ConnectError, httpx.RemoteProtocolError, httpx.ReadError, httpx.WriteError)):
        kind = TransportErrorKind.CONNECTION_RESET
    else:
        kind = TransportErrorKind.OTHER
    return TransportError(kind, url, str(exc))
