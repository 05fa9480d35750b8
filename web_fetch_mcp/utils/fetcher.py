"""Static page fetching over plain HTTP (no browser)."""

from __future__ import annotations

import logging
import socket
from typing import Optional

import httpx

from web_fetch_mcp.utils.errors import NetworkError

logger = logging.getLogger(__name__)

_HTTPX_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
}


def _connect_error_kind(exc: BaseException) -> str:
    """Walk the exception chain looking for the socket-level cause."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, socket.gaierror):
            return "dns"
        if isinstance(current, ConnectionRefusedError):
            return "connection_refused"
        current = current.__cause__ or current.__context__

    # anyio/httpcore sometimes only keep the message
    message = str(exc).lower()
    if "name or service not known" in message or "nodename nor servname" in message \
            or "getaddrinfo failed" in message or "name resolution" in message:
        return "dns"
    if "connection refused" in message or "errno 111" in message:
        return "connection_refused"
    return "connection"


class PageFetcher:
    """Fetch response bodies as text with ``httpx``.

    Every failure before a body is available is raised as ``NetworkError``
    with a ``kind`` telling timeouts, refused connections and DNS failures
    apart. Non-2xx responses are not errors unless ``raise_for_status`` is set:
    their body is returned.
    """

    def __init__(self, timeout_ms: int = 30000, client: Optional[httpx.AsyncClient] = None):
        self.timeout_ms = timeout_ms
        self._client = client

    async def fetch_text(
        self, url: str, timeout_ms: Optional[int] = None, raise_for_status: bool = False
    ) -> str:
        """Return the response body of ``url``.

        With ``raise_for_status`` a 4xx/5xx response is a ``NetworkError`` of
        kind ``http_status`` instead of a body.
        """
        timeout = (timeout_ms or self.timeout_ms) / 1000
        try:
            if self._client is not None:
                resp = await self._client.get(url, timeout=timeout)
            else:
                async with httpx.AsyncClient(
                    headers=_HTTPX_HEADERS,
                    follow_redirects=True,
                    timeout=timeout,
                ) as client:
                    resp = await client.get(url)
        except httpx.TimeoutException as e:
            raise NetworkError(url, "timeout", str(e) or type(e).__name__) from e
        except httpx.ConnectError as e:
            raise NetworkError(url, _connect_error_kind(e), str(e)) from e
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise NetworkError(url, "invalid_url", str(e)) from e
        except httpx.HTTPError as e:
            raise NetworkError(url, "protocol", str(e) or type(e).__name__) from e

        if resp.status_code >= 400:
            if raise_for_status:
                raise NetworkError(url, "http_status", f"HTTP {resp.status_code}")
            logger.warning("GET %s returned HTTP %d, using its body anyway", url, resp.status_code)
        else:
            logger.debug("GET %s -> %d (%d bytes)", url, resp.status_code, len(resp.content))
        return resp.text
