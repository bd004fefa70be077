"""Async HTTP forwarder for proxied requests.

Uses httpx.AsyncClient for non-blocking request forwarding. The upstream
response is returned as soon as its headers arrive; the body is left on the
wire for the content handlers to consume.
"""

import logging
from typing import AsyncIterator, Mapping, Optional

import httpx

from frameproxy.proxy.errors import UpstreamUnreachableError
from frameproxy.proxy.target import TargetDescriptor

logger = logging.getLogger(__name__)

# Headers that describe the proxy's own topology
STRIP_FORWARDED = {"x-forwarded-for", "x-forwarded-proto", "x-forwarded-host"}

# Hop-by-hop headers, never forwarded in either direction
HOP_BY_HOP = {
    "connection",
    "keep-alive",
    "proxy-connection",
    "transfer-encoding",
    "te",
    "trailer",
    "upgrade",
}

# Only encodings the decode pipeline knows how to reverse
ACCEPT_ENCODING = "gzip, deflate"


def sanitize_request_headers(headers: Mapping[str, str], target: TargetDescriptor) -> list:
    """Build forwarded headers for ``target``.

    Returns a list of (name, value) pairs so repeated headers survive.
    """
    items = headers.items() if not hasattr(headers, "multi_items") else headers.multi_items()
    forwarded = [
        (k, v) for k, v in items
        if k.lower() not in STRIP_FORWARDED
        and k.lower() not in HOP_BY_HOP
        and k.lower() not in {"host", "accept-encoding"}
    ]
    forwarded.append(("host", target.host))
    forwarded.append(("accept-encoding", ACCEPT_ENCODING))
    return forwarded


def has_body(headers: Mapping[str, str]) -> bool:
    """True if the inbound request declared a body."""
    if "transfer-encoding" in headers:
        return True
    try:
        return int(headers.get("content-length", "0")) > 0
    except ValueError:
        return False


class Forwarder:
    """Async HTTP forwarder that opens upstream requests for proxied targets."""

    def __init__(
        self,
        timeout: float = 60.0,
        connect_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            timeout: Read/write/pool timeout in seconds.
            connect_timeout: Connect timeout in seconds.
            transport: Optional transport override (tests use httpx.MockTransport).
        """
        self._timeout = timeout
        self._connect_timeout = connect_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Lazy-init the httpx async client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=self._connect_timeout),
                follow_redirects=False,
                transport=self._transport,
            )
        return self._client

    async def forward(
        self,
        method: str,
        target: TargetDescriptor,
        headers: Mapping[str, str],
        body: Optional[AsyncIterator[bytes]] = None,
    ) -> httpx.Response:
        """Forward a request to ``target``.

        Args:
            method: HTTP method, forwarded verbatim.
            target: Resolved upstream target.
            headers: Original request headers.
            body: Request body stream, or None when the client sent no body.

        Returns:
            httpx.Response with the body still unread (stream=True).

        Raises:
            UpstreamUnreachableError: On any connection-level failure.
        """
        client = await self._get_client()
        req = client.build_request(
            method,
            target.upstream_url,
            headers=sanitize_request_headers(headers, target),
            content=body,
        )
        logger.debug("Forwarding %s %s", method, target.upstream_url)
        try:
            return await client.send(req, stream=True)
        except httpx.TransportError as e:
            logger.error("Upstream %s unreachable: %s", target.upstream_url, e)
            raise UpstreamUnreachableError(str(e) or e.__class__.__name__) from e

    async def close(self) -> None:
        """Close the underlying httpx client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
