"""
Wiring for the Staff Gateway client.
"""

from typing import Any, Callable, Optional

import httpx
from prometheus_client import CollectorRegistry

from shared.config import GatewayConfig, get_config
from shared.errors import ConfigurationError
from shared.logging import configure_logging, get_logger
from shared.metrics import MetricsCollector, get_metrics_collector
from .adapters.auth_service import AuthService
from .auth.refresh import RefreshCoordinator
from .auth.session import SessionManager
from .client import GatewayClient
from .credentials.store import CredentialStore, JsonFileBackend, MemoryBackend
from .notifications.notifier import Notifier, LogNotifier


SERVICE_NAME = "staff_gateway"


class StaffGateway:
    """Composes the gateway client and its collaborators from configuration."""

    def __init__(
        self,
        config: Optional[GatewayConfig] = None,
        *,
        notifier: Optional[Notifier] = None,
        on_signed_out: Optional[Callable[[str], Any]] = None,
        store: Optional[CredentialStore] = None,
        registry: Optional[CollectorRegistry] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        configure_logs: bool = True
    ):
        self.config = config or get_config()
        if configure_logs:
            configure_logging(SERVICE_NAME, self.config.log_level)
        self.logger = get_logger(f"{SERVICE_NAME}.main")

        base_url = self.config.api_base_url
        if not base_url.startswith(("http://", "https://")):
            raise ConfigurationError(
                "API base URL must be absolute",
                details={"api_base_url": base_url, "env": self.config.env}
            )

        self.metrics: Optional[MetricsCollector] = (
            get_metrics_collector(SERVICE_NAME, registry) if self.config.metrics_enabled else None
        )
        self.notifier = notifier or LogNotifier()
        self.store = store or CredentialStore(
            JsonFileBackend(self.config.credentials_file) if self.config.credentials_file else MemoryBackend()
        )
        self.coordinator = RefreshCoordinator(wait_timeout=self.config.wait_timeout, metrics=self.metrics)
        self.session = SessionManager(
            self.store,
            self.notifier,
            on_signed_out=on_signed_out,
            sign_in_path=self.config.sign_in_path,
            metrics=self.metrics
        )
        self.client = GatewayClient(
            base_url,
            store=self.store,
            coordinator=self.coordinator,
            session=self.session,
            notifier=self.notifier,
            metrics=self.metrics,
            timeout=self.config.request_timeout,
            login_path=self.config.login_path,
            refresh_path=self.config.refresh_path,
            transport=transport
        )
        self.auth = AuthService(self.client, self.session)

        self.logger.info(
            "Gateway client ready",
            env=self.config.env,
            base_url=base_url,
            persistent_credentials=self.config.credentials_file is not None
        )

    async def __aenter__(self) -> "StaffGateway":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()


def create_gateway(**kwargs: Any) -> StaffGateway:
    """Create a configured gateway from the environment."""
    return StaffGateway(**kwargs)
