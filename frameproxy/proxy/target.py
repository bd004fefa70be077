"""Target resolution: which upstream URL an inbound request is asking for.

A target is supplied either as the ``site`` query parameter::

    /?site=https://example.com/about

or as a percent-encoded URL behind the ``/proxy/`` path prefix::

    /proxy/https%3A%2F%2Fexample.com%2Fabout

Resolution never raises; it returns a ``TargetResult`` holding either the
resolved ``TargetDescriptor`` or the ``TargetError`` describing why the
request cannot be proxied.
"""

from dataclasses import dataclass
from typing import Mapping, Optional, Tuple
from urllib.parse import quote, unquote, urlsplit, urlunsplit

from frameproxy.proxy.errors import InvalidTargetError, MissingTargetError, TargetError

SITE_PARAM = "site"
PATH_PREFIX = "/proxy/"
DEFAULT_PORT = 443


@dataclass(frozen=True)
class TargetDescriptor:
    """The upstream resource a single request is forwarded to."""
    scheme: str
    host: str
    port: int
    path_query: str
    url: str
    explicit_port: bool = False

    @property
    def netloc(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}" if self.explicit_port else host

    @property
    def base_url(self) -> str:
        """Scheme and host of the target, as seen by the documents it serves."""
        return f"{self.scheme}://{self.netloc}"

    @property
    def upstream_url(self) -> str:
        """URL actually requested; the outbound leg is always HTTPS."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        if self.port != DEFAULT_PORT:
            host = f"{host}:{self.port}"
        return f"https://{host}{self.path_query}"


@dataclass(frozen=True)
class TargetResult:
    """Either a resolved target or the error explaining its absence."""
    target: Optional[TargetDescriptor] = None
    error: Optional[TargetError] = None

    @property
    def ok(self) -> bool:
        return self.target is not None

    def unwrap(self) -> TargetDescriptor:
        if self.target is None:
            raise self.error or MissingTargetError()
        return self.target


def _split_query(query_string: str) -> Tuple[Optional[str], str]:
    """Pull the first ``site`` parameter out of a raw query string.

    The remaining parameters are returned untouched so that they reach the
    upstream exactly as the client encoded them.
    """
    site = None
    rest = []
    for part in query_string.split("&"):
        if not part:
            continue
        key, _, value = part.partition("=")
        if site is None and unquote(key) == SITE_PARAM:
            site = unquote(value)
            continue
        rest.append(part)
    return site, "&".join(rest)


def _append_query(url: str, extra_query: str) -> str:
    if not extra_query:
        return url
    parts = urlsplit(url)
    query = f"{parts.query}&{extra_query}" if parts.query else extra_query
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def parse_target(candidate: str) -> TargetResult:
    """Parse an absolute http(s) URL into a ``TargetDescriptor``."""
    try:
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError:
        return TargetResult(error=InvalidTargetError(candidate))

    if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
        return TargetResult(error=InvalidTargetError(candidate))

    path_query = parts.path or "/"
    if parts.query:
        path_query = f"{path_query}?{parts.query}"

    return TargetResult(target=TargetDescriptor(
        scheme=parts.scheme.lower(),
        host=parts.hostname,
        port=port or DEFAULT_PORT,
        path_query=path_query,
        url=candidate,
        explicit_port=port is not None,
    ))


def resolve_target(path: str, query_string: str = "") -> TargetResult:
    """Resolve the target from a raw (still percent-encoded) path and query.

    The ``site`` parameter wins over the ``/proxy/`` path prefix. Any other
    query parameters are carried over onto the target URL.
    """
    site, extra_query = _split_query(query_string)
    if site:
        return parse_target(_append_query(site, extra_query))

    if path.startswith(PATH_PREFIX) and len(path) > len(PATH_PREFIX):
        candidate = unquote(path[len(PATH_PREFIX):])
        return parse_target(_append_query(candidate, query_string))

    return TargetResult(error=MissingTargetError())


def resolve_request_target(scope: Mapping) -> TargetResult:
    """Resolve the target of an ASGI request scope."""
    raw_path = scope.get("raw_path")
    if raw_path:
        path = raw_path.decode("latin-1").split("?", 1)[0]
    else:
        path = quote(scope.get("path", "/"), safe="/:@")
    query_string = scope.get("query_string", b"").decode("latin-1")
    return resolve_target(path, query_string)


def encode_proxied_url(proxy_base_url: str, absolute_url: str) -> str:
    """Build the proxied form of ``absolute_url``."""
    return f"{proxy_base_url.rstrip('/')}/?{SITE_PARAM}={quote(absolute_url, safe='')}"


def extract_target_url(proxied_url: str) -> str:
    """Recover the absolute target URL from a proxied URL.

    Raises:
        TargetError: If the URL carries no usable target.
    """
    parts = urlsplit(proxied_url)
    return resolve_target(parts.path, parts.query).unwrap().url


def proxy_base_url_for(headers: Mapping[str, str], settings) -> str:
    """Scheme and host under which clients reach this proxy.

    Args:
        headers: Inbound request headers (case-insensitive mapping).
        settings: Proxy settings.

    Returns:
        Base URL without a trailing slash.
    """
    if settings.public_base_url:
        return settings.public_base_url.rstrip("/")

    scheme = settings.public_scheme
    host = headers.get("host", "localhost")
    if settings.trust_forwarded_headers:
        scheme = headers.get("x-forwarded-proto", scheme).split(",")[0].strip()
        host = headers.get("x-forwarded-host", host).split(",")[0].strip()
    return f"{scheme}://{host}"
