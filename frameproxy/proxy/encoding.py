"""Content-encoding and charset handling for rewritable bodies.

Only ``gzip`` and ``deflate`` are requested upstream, so those plus identity
are the codings decoded here. Output is never re-compressed: rewritten bodies
always leave the proxy identity-encoded.
"""

import codecs
import gzip
import logging
import zlib
from typing import List

from frameproxy.proxy.errors import DecodeError

logger = logging.getLogger(__name__)

SUPPORTED_ENCODINGS = {"gzip", "x-gzip", "deflate", "identity"}

DEFAULT_CHARSET = "utf-8"


def parse_encodings(content_encoding: str) -> List[str]:
    """Split a ``content-encoding`` value into codings, in application order."""
    return [c.strip().lower() for c in (content_encoding or "").split(",") if c.strip()]


def is_supported_encoding(content_encoding: str) -> bool:
    """True if every coding in ``content_encoding`` can be reversed."""
    return all(c in SUPPORTED_ENCODINGS for c in parse_encodings(content_encoding))


def _inflate(data: bytes) -> bytes:
    # "deflate" is meant to be zlib-wrapped, but plenty of servers send raw deflate
    try:
        return zlib.decompress(data)
    except zlib.error:
        return zlib.decompress(data, -zlib.MAX_WBITS)


def decode_body(data: bytes, content_encoding: str) -> bytes:
    """Reverse ``content_encoding`` on a complete body.

    Codings are undone last-applied first. Unknown codings are left as they
    are; callers check ``is_supported_encoding`` before relying on the result.

    Raises:
        DecodeError: If the payload is not valid for its declared coding.
    """
    if not data:
        return data

    for coding in reversed(parse_encodings(content_encoding)):
        try:
            if coding in ("gzip", "x-gzip"):
                data = gzip.decompress(data)
            elif coding == "deflate":
                data = _inflate(data)
            elif coding != "identity":
                logger.warning("Unknown content-encoding %r, leaving body as is", coding)
        except (OSError, EOFError, zlib.error) as e:
            raise DecodeError(coding, str(e)) from e
    return data


def strip_encoding_headers(headers: list) -> list:
    """Drop headers describing the original byte stream of a rewritten body."""
    return [(k, v) for k, v in headers if k.lower() not in ("content-encoding", "content-length")]


def charset_of(content_type: str) -> str:
    """Charset declared in ``content_type``, or utf-8 when absent or unknown."""
    for param in content_type.split(";")[1:]:
        key, _, value = param.partition("=")
        if key.strip().lower() == "charset":
            charset = value.strip().strip("\"'")
            try:
                return codecs.lookup(charset).name
            except LookupError:
                logger.debug("Unknown charset %r, falling back to %s", charset, DEFAULT_CHARSET)
                break
    return DEFAULT_CHARSET


def decode_text(body: bytes, content_type: str) -> str:
    """Bytes to text; undecodable bytes survive the round trip unchanged."""
    return body.decode(charset_of(content_type), errors="surrogateescape")


def encode_text(text: str, content_type: str) -> bytes:
    return text.encode(charset_of(content_type), errors="surrogateescape")
