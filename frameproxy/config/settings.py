"""Configuration management for frameproxy."""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration settings for the forwarding proxy."""

    model_config = SettingsConfigDict(
        env_prefix="FRAMEPROXY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Listener
    host: str = Field(
        default="0.0.0.0",
        description="Interface to bind to"
    )
    port: int = Field(
        default=3000,
        description="Port to listen on",
        validation_alias=AliasChoices("PORT", "FRAMEPROXY_PORT", "port"),
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)"
    )

    # Upstream
    upstream_timeout: float = Field(
        default=60.0,
        description="Read/write timeout for upstream requests in seconds"
    )
    connect_timeout: float = Field(
        default=10.0,
        description="Connect timeout for upstream requests in seconds"
    )

    # Public address used when rewriting references
    public_base_url: Optional[str] = Field(
        default=None,
        description="Fixed scheme://host of this proxy (None = derive from the request)"
    )
    public_scheme: str = Field(
        default="https",
        description="Scheme assumed for this proxy when deriving its base URL from Host"
    )
    trust_forwarded_headers: bool = Field(
        default=True,
        description="Honour X-Forwarded-Proto / X-Forwarded-Host when deriving the base URL"
    )

    # CORS
    cors_allow_methods: str = Field(
        default="GET, POST, PUT, PATCH, DELETE, HEAD, OPTIONS",
        description="Value of Access-Control-Allow-Methods"
    )
    cors_allow_headers: str = Field(
        default="*",
        description="Value of Access-Control-Allow-Headers"
    )

    @classmethod
    def load_from_file(cls, config_file: str) -> "Settings":
        """Load settings from a YAML config file.

        Args:
            config_file: Path to YAML config file

        Returns:
            Settings instance
        """
        import yaml

        with open(config_file, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)
