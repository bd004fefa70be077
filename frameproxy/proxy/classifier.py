"""Response classification: textual-rewritable vs. opaque content."""

from enum import Enum
from typing import Mapping

TEXT_TYPES = {
    "text/html",
    "application/xhtml+xml",
    "text/css",
    "application/json",
}

JAVASCRIPT_TYPES = {
    "text/javascript",
    "application/javascript",
    "application/x-javascript",
    "application/ecmascript",
    "application/x-ecmascript",
    "text/ecmascript",
    "text/x-javascript",
    "text/jscript",
    "text/livescript",
    "application/javascript-module",
    "text/javascript-module",
}

HTML_TYPES = {"text/html", "application/xhtml+xml"}


class ContentKind(str, Enum):
    TEXT = "text"
    OPAQUE = "opaque"


def media_type(content_type: str) -> str:
    """Lower-cased media type without parameters (``text/html; charset=x`` -> ``text/html``)."""
    return content_type.split(";", 1)[0].strip().lower()


def is_html(content_type: str) -> bool:
    return media_type(content_type) in HTML_TYPES


def classify_content_type(content_type: str) -> ContentKind:
    """Classify a ``content-type`` value.

    HTML, CSS, any JavaScript MIME variant and JSON (including ``+json``
    suffixes) are rewritable; everything else is opaque.
    """
    mt = media_type(content_type)
    if mt in TEXT_TYPES or mt in JAVASCRIPT_TYPES or mt.endswith("+json"):
        return ContentKind.TEXT
    return ContentKind.OPAQUE


def classify(headers: Mapping[str, str]) -> ContentKind:
    """Classify an upstream response from its headers."""
    return classify_content_type(headers.get("content-type", ""))
