"""URL rewriting for textual payloads and redirect headers.

Every reference to the target origin found in a document is replaced by a
proxied reference of the form ``<proxy base>/?site=<encoded absolute URL>``
so that follow-on requests keep routing through the proxy.

All reference kinds are alternatives of one compiled pattern and the document
is scanned once, left to right. Each reference is therefore rewritten at most
once, and values that already point at the proxy are left alone, so running
the rewriter over its own output changes nothing.

Recognised references:

    * ``href`` / ``src`` / ``action`` attributes holding an absolute URL under
      the target origin, a root-relative path, or exactly ``/``
    * CSS ``url(...)`` with a root-relative path
    * ``fetch("/...")`` calls with a root-relative literal
    * quoted framework asset paths (``/_next/...``, ``/_nuxt/...``)
    * quoted root-relative paths ending in a static-asset extension

HTML documents additionally get a ``<base>`` tag right after ``<head>``.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin

from frameproxy.proxy.target import encode_proxied_url

logger = logging.getLogger(__name__)

FRAMEWORK_PREFIXES = ("_next", "_nuxt", "__next")

ASSET_EXTENSIONS = (
    "js", "mjs", "css", "json", "map",
    "woff", "woff2", "ttf", "otf", "eot",
    "png", "jpg", "jpeg", "gif", "svg", "webp", "avif", "ico",
)

# A root-relative path: "/" not followed by a second "/"
_ROOT = r"/(?!/)"

_REFERENCE_RE = re.compile(
    # href="..." / src='...' / action="..."
    r"(?P<attr>(?<![\w-])(?:href|src|action)\s*=\s*)(?P<aq>[\"'])(?P<aval>[^\"'<>]*)(?P=aq)"
    # url(/x) / url("/x") / url('/x')
    r"|(?P<css>\burl\(\s*)(?P<cq>[\"']?)(?P<cval>" + _ROOT + r"[^\"'()\s]*)(?P=cq)(?P<cend>\s*\))"
    # fetch("/api/x")
    r"|(?P<fetch>\bfetch\(\s*)(?P<fq>[\"'`])(?P<fval>" + _ROOT + r"[^\"'`\s]*)(?P=fq)"
    # "/_next/static/chunk.js"
    r"|(?P<wq>[\"'])(?P<wval>/(?:" + "|".join(FRAMEWORK_PREFIXES) + r")/[^\"'\s]*)(?P=wq)"
    # "/img/logo.png?v=2"
    r"|(?P<sq>[\"'])(?P<sval>" + _ROOT + r"[^\"'\s?#]*\.(?:" + "|".join(ASSET_EXTENSIONS)
    + r")(?:\?[^\"'\s]*)?)(?P=sq)",
    re.IGNORECASE,
)

_HEAD_RE = re.compile(r"<head(?:\s[^>]*)?>", re.IGNORECASE)
_BASE_RE = re.compile(r"<base[\s>]", re.IGNORECASE)

_REFRESH_RE = re.compile(r"^(\s*\d+\s*[;,]\s*url\s*=\s*)([\"']?)(.+?)\2\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class RewriteContext:
    """Per-response rewrite parameters; built once, never mutated."""
    base_url: str
    proxy_base_url: str
    document_url: Optional[str] = None

    def proxied(self, absolute_url: str) -> str:
        return encode_proxied_url(self.proxy_base_url, absolute_url)

    def is_proxied(self, value: str) -> bool:
        return value.startswith(self.proxy_base_url.rstrip("/") + "/")

    def is_under_base(self, value: str) -> bool:
        if not value.lower().startswith(self.base_url.lower()):
            return False
        rest = value[len(self.base_url):]
        return not rest or rest[0] in "/?#"

    def resolve_root(self, path: str) -> str:
        return self.base_url + path


def _rewrite_attribute(value: str, context: RewriteContext) -> Optional[str]:
    """Proxied form of an attribute value, or None to leave it alone."""
    if context.is_proxied(value):
        return None
    if context.is_under_base(value):
        return context.proxied(value)
    if value.startswith("//"):
        scheme = context.base_url.split(":", 1)[0]
        absolute = f"{scheme}:{value}"
        return context.proxied(absolute) if context.is_under_base(absolute) else None
    if value.startswith("/"):
        return context.proxied(context.resolve_root(value))
    return None


def _replace(match: "re.Match", context: RewriteContext) -> str:
    if match.group("attr") is not None:
        rewritten = _rewrite_attribute(match.group("aval"), context)
        if rewritten is None:
            return match.group(0)
        quote = match.group("aq")
        return f"{match.group('attr')}{quote}{rewritten}{quote}"

    if match.group("css") is not None:
        quote = match.group("cq")
        target = context.proxied(context.resolve_root(match.group("cval")))
        return f"{match.group('css')}{quote}{target}{quote}{match.group('cend')}"

    if match.group("fetch") is not None:
        quote = match.group("fq")
        # Interpolated template literals are resolved at runtime
        if quote == "`" and "${" in match.group("fval"):
            return match.group(0)
        target = context.proxied(context.resolve_root(match.group("fval")))
        return f"{match.group('fetch')}{quote}{target}{quote}"

    if match.group("wq") is not None:
        quote = match.group("wq")
        return f"{quote}{context.proxied(context.resolve_root(match.group('wval')))}{quote}"

    quote = match.group("sq")
    return f"{quote}{context.proxied(context.resolve_root(match.group('sval')))}{quote}"


def insert_base_tag(document: str, context: RewriteContext) -> str:
    """Insert ``<base href>`` right after the opening ``<head>`` tag.

    Documents without a ``<head>`` tag, or that already declare a ``<base>``,
    are returned unchanged.
    """
    if _BASE_RE.search(document):
        return document
    head = _HEAD_RE.search(document)
    if head is None:
        return document
    tag = f'<base href="{context.proxied(context.base_url + "/")}">'
    return document[:head.end()] + tag + document[head.end():]


def rewrite_document(document: str, context: RewriteContext, html: bool = False) -> str:
    """Rewrite every discoverable reference in ``document``.

    Args:
        document: Complete decoded document.
        context: Origin and proxy base for this response.
        html: Also insert a ``<base>`` tag.

    Returns:
        The rewritten document.
    """
    rewritten = _REFERENCE_RE.sub(lambda m: _replace(m, context), document)
    if html:
        rewritten = insert_base_tag(rewritten, context)
    return rewritten


def rewrite_location(location: str, context: RewriteContext) -> str:
    """Rewrite a redirect ``location`` into a proxied absolute URL."""
    if context.is_proxied(location):
        return location
    absolute = urljoin(context.document_url or context.base_url + "/", location)
    rewritten = context.proxied(absolute)
    logger.debug("Rewriting location %s -> %s", location, rewritten)
    return rewritten


def rewrite_refresh(value: str, context: RewriteContext) -> str:
    """Rewrite the URL part of a ``Refresh: 0; url=/x`` header."""
    match = _REFRESH_RE.match(value)
    if match is None:
        return value
    prefix, quote, url = match.groups()
    return f"{prefix}{quote}{rewrite_location(url, context)}{quote}"
