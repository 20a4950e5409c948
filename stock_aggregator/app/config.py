"""
Stock Aggregator Configuration

Pydantic Settings for the stock aggregator service.
Loads from environment variables (and .env) with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

from ..core.constants import (
    DEFAULT_HISTORY_MINUTES,
    DEFAULT_UPSTREAM_BASE_URL,
    DEFAULT_UPSTREAM_TIMEOUT_SECONDS,
)
from ..core.types import Credentials


class Settings(BaseSettings):
    """Stock aggregator service configuration."""

    # Service identity
    service_name: str = Field(default="stock-price-aggregator", description="Service name for logging/metrics")
    environment: Literal["local", "staging", "production"] = Field(default="local")
    service_version: str = Field(default="0.1.0")
    log_level: str = Field(default="INFO")

    # Upstream provider
    upstream_base_url: str = Field(default=DEFAULT_UPSTREAM_BASE_URL)
    upstream_timeout_seconds: float = Field(
        default=DEFAULT_UPSTREAM_TIMEOUT_SECONDS,
        gt=0,
        description="Timeout applied to every upstream request",
    )
    warm_token_on_startup: bool = Field(
        default=True,
        description="Try to authenticate at startup (failure is logged, not fatal)",
    )

    # Upstream credentials (EMAIL, NAME, ROLL_NO, ACCESS_CODE, CLIENT_ID, CLIENT_SECRET)
    email: str = Field(default="")
    name: str = Field(default="")
    roll_no: str = Field(default="")
    access_code: str = Field(default="")
    client_id: str = Field(default="")
    client_secret: str = Field(default="")

    # Queries
    default_minutes: int = Field(default=DEFAULT_HISTORY_MINUTES, gt=0)

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000)
    cors_origins: str = Field(default="*", description="Comma-separated allowed origins")

    class Config:
        env_prefix = ""
        case_sensitive = False
        env_file = ".env"
        extra = "ignore"

    @property
    def credentials(self) -> Credentials:
        """Credential fields for the upstream auth exchange."""
        return Credentials(
            email=self.email,
            name=self.name,
            roll_no=self.roll_no,
            access_code=self.access_code,
            client_id=self.client_id,
            client_secret=self.client_secret,
        )

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse CORS origins string to list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


# Global settings instance
settings = Settings()
