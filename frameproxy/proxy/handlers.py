"""Content handlers: how an upstream body becomes the client's body.

Two strategies sit behind one interface:

    * PassthroughHandler streams opaque bodies chunk by chunk, undecoded, with
      their original content-encoding.
    * RewriteHandler buffers a textual body, decodes it, rewrites embedded
      URLs and emits identity-encoded bytes.

``select_handler`` picks the strategy from the response headers.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator, Awaitable, Callable, List, Tuple

import httpx
from fastapi.responses import Response, StreamingResponse

from frameproxy.proxy.classifier import ContentKind, classify, is_html
from frameproxy.proxy.emitter import apply_headers, sanitize_response_headers
from frameproxy.proxy.encoding import (
    decode_body,
    decode_text,
    encode_text,
    is_supported_encoding,
    strip_encoding_headers,
)
from frameproxy.proxy.errors import StreamTransferError
from frameproxy.proxy.rewriter import (
    RewriteContext,
    rewrite_document,
    rewrite_location,
    rewrite_refresh,
)

logger = logging.getLogger(__name__)

Receive = Callable[[], Awaitable[dict]]


class ClientDisconnected(Exception):
    """The client went away before its response was ready."""


def rewrite_navigation_headers(
    headers: List[Tuple[str, str]],
    status_code: int,
    context: RewriteContext,
) -> List[Tuple[str, str]]:
    """Route redirect and refresh targets back through the proxy."""
    result = []
    for k, v in headers:
        name = k.lower()
        if name == "location" and 300 <= status_code < 400:
            v = rewrite_location(v, context)
        elif name == "refresh":
            v = rewrite_refresh(v, context)
        result.append((k, v))
    return result


class ContentHandler(ABC):
    """Turns an upstream response into the response sent to the client."""

    def prepare_headers(self, upstream: httpx.Response, context: RewriteContext) -> List[Tuple[str, str]]:
        headers = sanitize_response_headers(upstream.headers.multi_items())
        return rewrite_navigation_headers(headers, upstream.status_code, context)

    @abstractmethod
    async def respond(
        self,
        upstream: httpx.Response,
        context: RewriteContext,
        receive: Receive,
        settings,
    ) -> Response:
        """Build the client response. Takes ownership of ``upstream``.

        Args:
            upstream: Upstream response with its body unread.
            context: Rewrite parameters for this response.
            receive: ASGI receive callable of the inbound request.
            settings: Proxy settings.
        """
        pass


class PassthroughHandler(ContentHandler):
    """Streams the body through untouched."""

    async def _stream(self, upstream: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in upstream.aiter_raw():
                yield chunk
        except httpx.HTTPError as e:
            error = StreamTransferError(str(e) or e.__class__.__name__)
            logger.error("%s (%s)", error.message, upstream.request.url)
            raise error from e
        finally:
            await upstream.aclose()

    async def respond(self, upstream, context, receive, settings):
        headers = self.prepare_headers(upstream, context)
        response = StreamingResponse(self._stream(upstream), status_code=upstream.status_code)
        return apply_headers(response, headers, settings)


async def _read_all(upstream: httpx.Response) -> bytes:
    try:
        return b"".join([chunk async for chunk in upstream.aiter_raw()])
    except httpx.HTTPError as e:
        raise StreamTransferError(str(e) or e.__class__.__name__) from e


async def _wait_for_disconnect(receive: Receive) -> None:
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            return


async def read_body(upstream: httpx.Response, receive: Receive) -> bytes:
    """Buffer the raw upstream body, abandoning it if the client disconnects.

    Raises:
        StreamTransferError: If the upstream body breaks mid-transfer.
        ClientDisconnected: If the client disconnects first.
    """
    reader = asyncio.ensure_future(_read_all(upstream))
    watcher = asyncio.ensure_future(_wait_for_disconnect(receive))
    try:
        await asyncio.wait({reader, watcher}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        watcher.cancel()
        await asyncio.gather(watcher, return_exceptions=True)
        if not reader.done():
            reader.cancel()
            await asyncio.gather(reader, return_exceptions=True)

    if not reader.cancelled():
        return reader.result()
    raise ClientDisconnected()


async def _single(body: bytes) -> AsyncIterator[bytes]:
    yield body


class RewriteHandler(ContentHandler):
    """Buffers, decodes and rewrites textual bodies."""

    async def respond(self, upstream, context, receive, settings):
        try:
            raw = await read_body(upstream, receive)
        finally:
            await upstream.aclose()

        content_type = upstream.headers.get("content-type", "")
        body = decode_body(raw, upstream.headers.get("content-encoding", ""))
        document = decode_text(body, content_type)
        rewritten = encode_text(
            rewrite_document(document, context, html=is_html(content_type)),
            content_type,
        )
        logger.debug(
            "Rewrote %s (%s): %d -> %d bytes",
            upstream.request.url, content_type, len(body), len(rewritten),
        )

        headers = strip_encoding_headers(self.prepare_headers(upstream, context))
        response = StreamingResponse(_single(rewritten), status_code=upstream.status_code)
        return apply_headers(response, headers, settings)


def select_handler(upstream: httpx.Response) -> ContentHandler:
    """Pick the content strategy for ``upstream``.

    Textual bodies in an encoding we cannot reverse are passed through rather
    than rewritten, since rewriting compressed bytes would corrupt them.
    """
    if classify(upstream.headers) is ContentKind.TEXT:
        encoding = upstream.headers.get("content-encoding", "")
        if is_supported_encoding(encoding):
            return RewriteHandler()
        logger.warning(
            "Not rewriting %s: unsupported content-encoding %r",
            upstream.request.url, encoding,
        )
    return PassthroughHandler()
