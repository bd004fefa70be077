"""Unit tests for target resolution and proxied URL encoding."""

import pytest

from frameproxy.config.settings import Settings
from frameproxy.proxy.errors import InvalidTargetError, MissingTargetError
from frameproxy.proxy.target import (
    encode_proxied_url,
    extract_target_url,
    parse_target,
    proxy_base_url_for,
    resolve_request_target,
    resolve_target,
)


def test_resolve_from_site_param():
    """Test resolving a target from the site query parameter."""
    result = resolve_target("/", "site=https%3A%2F%2Fexample.com%2Fabout")

    assert result.ok
    target = result.target
    assert target.scheme == "https"
    assert target.host == "example.com"
    assert target.port == 443
    assert target.path_query == "/about"
    assert target.base_url == "https://example.com"
    assert target.upstream_url == "https://example.com/about"


def test_resolve_unencoded_site_param():
    """Test that an unencoded site value keeps its own query string."""
    target = resolve_target("/", "site=https://example.com/search?q=cats&page=2").unwrap()

    assert target.url == "https://example.com/search?q=cats&page=2"
    assert target.path_query == "/search?q=cats&page=2"


def test_resolve_appends_extra_params():
    """Test that other query parameters are carried over to the target."""
    target = resolve_target("/", "lang=en&site=https%3A%2F%2Fexample.com%2Fsearch").unwrap()

    assert target.url == "https://example.com/search?lang=en"


def test_resolve_from_path_prefix():
    """Test resolving a target from the /proxy/ path convention."""
    target = resolve_target("/proxy/https%3A%2F%2Fexample.com%2Fdocs", "v=1").unwrap()

    assert target.url == "https://example.com/docs?v=1"
    assert target.path_query == "/docs?v=1"


def test_site_param_wins_over_path_prefix():
    """Test that the site parameter has priority over the path prefix."""
    target = resolve_target(
        "/proxy/https%3A%2F%2Fother.org%2F", "site=https%3A%2F%2Fexample.com%2F"
    ).unwrap()

    assert target.host == "example.com"


@pytest.mark.parametrize("path,query", [
    ("/", ""),
    ("/", "site="),
    ("/about", "q=1"),
    ("/proxy/", ""),
])
def test_missing_target(path, query):
    """Test requests that carry no target."""
    result = resolve_target(path, query)

    assert not result.ok
    assert isinstance(result.error, MissingTargetError)
    with pytest.raises(MissingTargetError):
        result.unwrap()


@pytest.mark.parametrize("candidate", [
    "not a url",
    "example.com/about",
    "ftp://example.com/file",
    "https://",
    "https://example.com:notaport/",
])
def test_invalid_target(candidate):
    """Test candidates that are not absolute http(s) URLs."""
    result = parse_target(candidate)

    assert not result.ok
    assert isinstance(result.error, InvalidTargetError)
    assert candidate in result.error.message


def test_explicit_port():
    """Test that an explicit port is kept on both base and upstream URLs."""
    target = parse_target("https://example.com:8443/x").unwrap()

    assert target.port == 8443
    assert target.base_url == "https://example.com:8443"
    assert target.upstream_url == "https://example.com:8443/x"


def test_http_target_is_fetched_over_https():
    """Test that the outbound leg always uses HTTPS."""
    target = parse_target("http://example.com/page").unwrap()

    assert target.base_url == "http://example.com"
    assert target.upstream_url == "https://example.com/page"


def test_fragment_is_not_sent_upstream():
    """Test that fragments stay out of the upstream request."""
    target = parse_target("https://example.com/page?a=1#section").unwrap()

    assert target.path_query == "/page?a=1"


def test_encode_proxied_url():
    """Test the proxied URL format."""
    proxied = encode_proxied_url("https://proxy.test/", "https://example.com/about")

    assert proxied == "https://proxy.test/?site=https%3A%2F%2Fexample.com%2Fabout"


@pytest.mark.parametrize("url", [
    "https://example.com/",
    "https://example.com/search?q=a&b=c",
    "https://example.com/a?b=1#frag",
    "https://example.com/path with space/%20already",
    "https://例え.jp/パス?名前=値&x=ü",
])
def test_encode_extract_round_trip(url):
    """Test that extracting a proxied URL recovers the original exactly."""
    proxied = encode_proxied_url("https://proxy.test", url)

    assert extract_target_url(proxied) == url


def test_extract_target_url_without_target():
    """Test extracting from a URL that is not proxied."""
    with pytest.raises(MissingTargetError):
        extract_target_url("https://proxy.test/about")


def test_resolve_request_target_uses_raw_path():
    """Test resolving from an ASGI scope."""
    scope = {
        "path": "/proxy/https://example.com/a/b",
        "raw_path": b"/proxy/https%3A%2F%2Fexample.com%2Fa%2Fb",
        "query_string": b"",
    }

    target = resolve_request_target(scope).unwrap()

    assert target.url == "https://example.com/a/b"


def test_proxy_base_url_from_host():
    """Test deriving the proxy base URL from the Host header."""
    settings = Settings()

    assert proxy_base_url_for({"host": "proxy.test"}, settings) == "https://proxy.test"


def test_proxy_base_url_from_forwarded_headers():
    """Test deriving the proxy base URL behind a load balancer."""
    settings = Settings()
    headers = {
        "host": "internal:3000",
        "x-forwarded-proto": "https",
        "x-forwarded-host": "proxy.example.org",
    }

    assert proxy_base_url_for(headers, settings) == "https://proxy.example.org"


def test_proxy_base_url_ignores_forwarded_headers_when_untrusted():
    """Test that forwarded headers can be ignored."""
    settings = Settings(trust_forwarded_headers=False, public_scheme="http")
    headers = {"host": "localhost:3000", "x-forwarded-host": "evil.test"}

    assert proxy_base_url_for(headers, settings) == "http://localhost:3000"


def test_proxy_base_url_fixed():
    """Test that a configured public base URL wins."""
    settings = Settings(public_base_url="https://frames.example.org/")

    assert proxy_base_url_for({"host": "localhost"}, settings) == "https://frames.example.org"
