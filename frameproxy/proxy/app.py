"""FastAPI application: the request boundary of the forwarding proxy.

Endpoints:
    OPTIONS *                 -- CORS preflight, answered locally
    *       /?site=<url>      -- proxy <url>
    *       /proxy/<encoded>  -- proxy the percent-encoded <encoded> URL
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from frameproxy import __version__
from frameproxy.config.settings import Settings
from frameproxy.proxy.emitter import error_response, preflight_response
from frameproxy.proxy.errors import ProxyError
from frameproxy.proxy.forwarder import Forwarder, has_body
from frameproxy.proxy.handlers import ClientDisconnected, select_handler
from frameproxy.proxy.rewriter import RewriteContext
from frameproxy.proxy.target import proxy_base_url_for, resolve_request_target

logger = logging.getLogger(__name__)

# Status logged when the client hangs up before its response is ready
CLIENT_CLOSED_REQUEST = 499


def create_app(
    settings: Optional[Settings] = None,
    forwarder: Optional[Forwarder] = None,
) -> FastAPI:
    """Create the FastAPI proxy application.

    Args:
        settings: Proxy settings (defaults to environment-derived settings).
        forwarder: HTTP forwarder for upstream requests.

    Returns:
        Configured FastAPI application.
    """
    _settings = settings or Settings()
    _forwarder = forwarder or Forwarder(
        timeout=_settings.upstream_timeout,
        connect_timeout=_settings.connect_timeout,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await _forwarder.close()

    app = FastAPI(
        title="frameproxy",
        description="Forwarding proxy that rewrites pages so they keep routing through it",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    # --- Errors ---

    @app.exception_handler(ProxyError)
    async def handle_proxy_error(request: Request, exc: ProxyError):
        if exc.status_code < 500:
            logger.warning("%s %s: %s", request.method, request.url, exc.message)
        else:
            logger.error("%s %s: %s", request.method, request.url, exc.message)
        return error_response(exc.status_code, exc.message, _settings)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        logger.warning("%s %s: %s", request.method, request.url.path, exc.detail)
        return error_response(exc.status_code, str(exc.detail), _settings)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error proxying %s %s", request.method, request.url)
        return error_response(500, f"Proxy error: {exc}", _settings)

    # --- Proxy ---

    async def proxy(request: Request):
        if request.method == "OPTIONS":
            return preflight_response(_settings)

        target = resolve_request_target(request.scope).unwrap()
        context = RewriteContext(
            base_url=target.base_url,
            proxy_base_url=proxy_base_url_for(request.headers, _settings),
            document_url=target.url,
        )

        body = request.stream() if has_body(request.headers) else None
        upstream = await _forwarder.forward(request.method, target, request.headers, body)
        handler = select_handler(upstream)
        logger.info(
            "%s %s -> %d %s (%s)",
            request.method, target.upstream_url, upstream.status_code,
            upstream.headers.get("content-type", "-"), type(handler).__name__,
        )

        try:
            return await handler.respond(upstream, context, request.receive, _settings)
        except ClientDisconnected:
            logger.info("Client disconnected, abandoned %s", target.upstream_url)
            return Response(status_code=CLIENT_CLOSED_REQUEST)

    # Any method, including WebDAV and custom verbs, is forwarded as-is
    app.add_route("/{path:path}", proxy, include_in_schema=False)

    return app
