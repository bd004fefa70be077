"""Process-level server object: one app, one listener, injected configuration."""

import logging
from typing import Optional

import uvicorn

from frameproxy.config.settings import Settings
from frameproxy.proxy.app import create_app
from frameproxy.proxy.forwarder import Forwarder

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(log_level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )


class ProxyServer:
    """The forwarding proxy bound to a single host/port."""

    def __init__(self, settings: Settings, forwarder: Optional[Forwarder] = None):
        """
        Args:
            settings: Listener, upstream and CORS configuration.
            forwarder: Upstream forwarder (built from settings when omitted).
        """
        self.settings = settings
        self.forwarder = forwarder or Forwarder(
            timeout=settings.upstream_timeout,
            connect_timeout=settings.connect_timeout,
        )
        self.app = create_app(settings=settings, forwarder=self.forwarder)

    @property
    def address(self) -> str:
        return f"http://{self.settings.host}:{self.settings.port}"

    def run(self) -> None:
        """Serve until interrupted."""
        logger.info("Proxy server running on port %d", self.settings.port)
        uvicorn.run(
            self.app,
            host=self.settings.host,
            port=self.settings.port,
            log_level=self.settings.log_level.lower(),
        )
