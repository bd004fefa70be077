"""Unit tests for the upstream forwarder."""

import asyncio

import httpx
import pytest

from frameproxy.proxy.errors import UpstreamUnreachableError
from frameproxy.proxy.forwarder import Forwarder, has_body, sanitize_request_headers
from frameproxy.proxy.target import parse_target


@pytest.fixture
def target():
    return parse_target("https://example.com/search?q=1").unwrap()


def test_sanitize_request_headers(target):
    """Test the header sanitization rules."""
    headers = {
        "Host": "proxy.test",
        "X-Forwarded-For": "10.0.0.1",
        "X-Forwarded-Proto": "https",
        "X-Forwarded-Host": "proxy.test",
        "Accept-Encoding": "br, zstd",
        "Connection": "keep-alive",
        "Cookie": "session=abc",
        "User-Agent": "pytest",
    }

    forwarded = sanitize_request_headers(headers, target)
    names = [k.lower() for k, _ in forwarded]

    assert ("host", "example.com") in forwarded
    assert ("accept-encoding", "gzip, deflate") in forwarded
    assert ("Cookie", "session=abc") in forwarded
    assert ("User-Agent", "pytest") in forwarded
    assert names.count("host") == 1
    assert names.count("accept-encoding") == 1
    for name in ("x-forwarded-for", "x-forwarded-proto", "x-forwarded-host", "connection"):
        assert name not in names


def test_sanitize_keeps_repeated_headers(target):
    """Test that repeated headers survive sanitization."""
    headers = httpx.Headers([("Accept", "text/html"), ("X-Custom", "a"), ("X-Custom", "b")])

    forwarded = sanitize_request_headers(headers, target)

    assert ("X-Custom", "a") in forwarded or ("x-custom", "a") in forwarded
    assert len([k for k, _ in forwarded if k.lower() == "x-custom"]) == 2


@pytest.mark.parametrize("headers,expected", [
    ({}, False),
    ({"content-length": "0"}, False),
    ({"content-length": "12"}, True),
    ({"content-length": "junk"}, False),
    ({"transfer-encoding": "chunked"}, True),
])
def test_has_body(headers, expected):
    """Test detecting whether a request carries a body."""
    assert has_body(headers) is expected


def test_forward_builds_upstream_request(target):
    """Test the request that reaches the upstream."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["host"] = request.headers["host"]
        seen["body"] = request.content
        return httpx.Response(302, headers={"location": "/elsewhere"})

    async def body():
        yield b"a=1"
        yield b"&b=2"

    async def run():
        forwarder = Forwarder(transport=httpx.MockTransport(handler))
        try:
            response = await forwarder.forward(
                "POST", target, {"content-length": "7", "host": "proxy.test"}, body()
            )
            await response.aclose()
            return response
        finally:
            await forwarder.close()

    response = asyncio.run(run())

    # Redirects are handed back, not followed
    assert response.status_code == 302
    assert seen == {
        "method": "POST",
        "url": "https://example.com/search?q=1",
        "host": "example.com",
        "body": b"a=1&b=2",
    }


def test_forward_unreachable(target):
    """Test that connection failures become UpstreamUnreachableError."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Name or service not known", request=request)

    async def run():
        forwarder = Forwarder(transport=httpx.MockTransport(handler))
        try:
            await forwarder.forward("GET", target, {}, None)
        finally:
            await forwarder.close()

    with pytest.raises(UpstreamUnreachableError) as exc_info:
        asyncio.run(run())

    assert exc_info.value.status_code == 500
    assert "Name or service not known" in exc_info.value.message
