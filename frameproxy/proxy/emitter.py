"""Response emission: header sanitizing, CORS, and plaintext error bodies."""

from typing import Iterable, List, Tuple

from fastapi.responses import PlainTextResponse, Response

from frameproxy.proxy.forwarder import HOP_BY_HOP

# Headers that would stop the response from being framed or read cross-origin
FRAME_BLOCKING = {
    "x-frame-options",
    "content-security-policy",
    "content-security-policy-report-only",
}

CORS_HEADERS = {
    "access-control-allow-origin",
    "access-control-allow-methods",
    "access-control-allow-headers",
}


def sanitize_response_headers(headers: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
    """Drop frame-blocking, CORS and hop-by-hop headers; keep repeated ones."""
    return [
        (k, v) for k, v in headers
        if k.lower() not in FRAME_BLOCKING
        and k.lower() not in CORS_HEADERS
        and k.lower() not in HOP_BY_HOP
    ]


def cors_headers(settings) -> List[Tuple[str, str]]:
    return [
        ("Access-Control-Allow-Origin", "*"),
        ("Access-Control-Allow-Methods", settings.cors_allow_methods),
        ("Access-Control-Allow-Headers", settings.cors_allow_headers),
    ]


def apply_headers(response: Response, headers: Iterable[Tuple[str, str]], settings) -> Response:
    """Append ``headers`` and the CORS headers to ``response``."""
    for k, v in headers:
        response.headers.append(k, v)
    for k, v in cors_headers(settings):
        response.headers[k] = v
    return response


def error_response(status_code: int, message: str, settings) -> Response:
    """Plaintext diagnostic with CORS headers."""
    return apply_headers(PlainTextResponse(message, status_code=status_code), [], settings)


def preflight_response(settings) -> Response:
    """Local answer to an ``OPTIONS`` request."""
    return apply_headers(Response(status_code=200), [], settings)
