"""
Shared configuration management for the Staff Gateway client.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GatewayConfig(BaseSettings):
    """Gateway client configuration loaded from GATEWAY_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GATEWAY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Backend
    api_base_url_pro: str = Field(default="https://api.medicalink.click")
    api_base_url_dev: str = Field(default="http://localhost:3000")
    api_prefix: str = Field(default="/api")
    request_timeout: float = Field(default=30.0, gt=0)

    # Credential renewal
    refresh_wait_timeout: float = Field(default=30.0, ge=0)
    login_path: str = Field(default="/auth/login")
    refresh_path: str = Field(default="/auth/refresh")
    sign_in_path: str = Field(default="/sign-in")

    # Persistence
    credentials_file: Optional[str] = Field(default=None)

    # Observability
    metrics_enabled: bool = Field(default=True)

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"

    @property
    def api_base_url(self) -> str:
        """Resolve the backend URL for the current environment, API prefix included."""
        base = self.api_base_url_pro if self.is_production else self.api_base_url_dev
        return f"{base.rstrip('/')}{self.api_prefix}"

    @property
    def wait_timeout(self) -> Optional[float]:
        """Deadline for requests queued behind a renewal; None means wait indefinitely."""
        return self.refresh_wait_timeout or None


@lru_cache(maxsize=1)
def get_config() -> GatewayConfig:
    """Get the process-wide configuration."""
    return GatewayConfig()
