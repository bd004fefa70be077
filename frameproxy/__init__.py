"""frameproxy - Forwarding proxy that rewrites pages to keep routing through itself."""

__version__ = "0.1.0"

from frameproxy.config.settings import Settings
from frameproxy.proxy.errors import (
    ProxyError,
    TargetError,
    MissingTargetError,
    InvalidTargetError,
    UpstreamUnreachableError,
    StreamTransferError,
    DecodeError,
)
from frameproxy.proxy.target import (
    TargetDescriptor,
    TargetResult,
    resolve_target,
    encode_proxied_url,
    extract_target_url,
)
from frameproxy.proxy.rewriter import RewriteContext, rewrite_document, rewrite_location

__all__ = [
    "Settings",
    "ProxyError",
    "TargetError",
    "MissingTargetError",
    "InvalidTargetError",
    "UpstreamUnreachableError",
    "StreamTransferError",
    "DecodeError",
    "TargetDescriptor",
    "TargetResult",
    "resolve_target",
    "encode_proxied_url",
    "extract_target_url",
    "RewriteContext",
    "rewrite_document",
    "rewrite_location",
]
