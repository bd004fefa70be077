"""Error taxonomy for the forwarding proxy.

Every error carries the HTTP status the request boundary answers with and a
short plaintext diagnostic. None of them are retried.
"""


class ProxyError(Exception):
    """Base class for errors that terminate a single proxied request."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class TargetError(ProxyError):
    """The inbound request does not name a usable target."""

    status_code = 400


class MissingTargetError(TargetError):
    """Neither the ``site`` parameter nor the ``/proxy/`` path carried a target."""

    def __init__(self, message: str = "Missing ?site= parameter. Usage: /?site=https://example.com"):
        super().__init__(message)


class InvalidTargetError(TargetError):
    """The candidate target does not parse as an absolute http(s) URL."""

    def __init__(self, candidate: str):
        self.candidate = candidate
        super().__init__(f"Invalid target URL: {candidate}")


class UpstreamUnreachableError(ProxyError):
    """Connection-level failure talking to the upstream (DNS, TLS, refused, timeout)."""

    def __init__(self, message: str):
        super().__init__(f"Proxy error: {message}")


class StreamTransferError(ProxyError):
    """The upstream body broke while being transferred."""

    def __init__(self, message: str):
        super().__init__(f"Proxy error: upstream body transfer failed: {message}")


class DecodeError(ProxyError):
    """A compressed payload could not be decoded."""

    def __init__(self, encoding: str, reason: str):
        self.encoding = encoding
        super().__init__(f"Proxy error: could not decode {encoding} body: {reason}")
