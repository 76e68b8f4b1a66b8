from __future__ import annotations

import time
from typing import Any, Dict, List, Mapping, Optional

from ..core.logging import get_logger
from ..core.observability import increment_metric, lifecycle_context
from ..core.settings import Settings
from .connection import Connection, ConnectionProvider, FinalizeResult, RefreshResult
from .credential import Credential
from .errors import ProviderError
from .executor import RequestExecutor
from .providers import PROVIDER_CLASSES, Provider

logger = get_logger(__name__)


class ProviderRegistry:
    """One Provider instance per ConnectionProvider, built eagerly at process start."""

    def __init__(self, providers: Mapping[ConnectionProvider, Provider]):
        missing = [p.value for p in ConnectionProvider if p not in providers]
        if missing:
            raise RuntimeError(f"No provider registered for: {', '.join(missing)}")
        for provider_id, provider in providers.items():
            if provider.id != provider_id:
                raise RuntimeError(f"Provider {type(provider).__name__} registered under '{provider_id.value}'")
        self._providers: Dict[ConnectionProvider, Provider] = dict(providers)

    # PUBLIC_INTERFACE
    @classmethod
    def from_settings(cls, settings: Settings, executor: RequestExecutor) -> "ProviderRegistry":
        """Build every known adapter with its client credentials and the shared executor."""
        providers = {
            provider_id: provider_cls(getattr(settings.oauth, provider_id.value), executor)
            for provider_id, provider_cls in PROVIDER_CLASSES.items()
        }
        return cls(providers)

    # PUBLIC_INTERFACE
    def get(self, provider_id: ConnectionProvider) -> Provider:
        """Return the adapter for provider_id. Unknown ids are programming errors (KeyError)."""
        try:
            return self._providers[ConnectionProvider(provider_id)]
        except ValueError:
            raise KeyError(provider_id) from None

    # PUBLIC_INTERFACE
    def list_public(self) -> List[Dict[str, Any]]:
        """Describe registered providers without exposing configuration."""
        return [
            {"id": provider_id.value, "name": type(provider).__name__, "scrubbed_fields": list(provider.scrubbed_fields)}
            for provider_id, provider in self._providers.items()
        ]

    # PUBLIC_INTERFACE
    async def finalize(
        self,
        connection: Connection,
        related_credential: Optional[Credential],
        code: str,
        redirect_uri: str,
    ) -> FinalizeResult:
        """Route an authorization-code exchange to the connection's provider."""
        provider = self.get(connection.provider)
        with lifecycle_context(connection.provider.value, connection.connection_id):
            increment_metric("finalize_total", 1.0)
            t0 = time.perf_counter()
            try:
                result = await provider.finalize(connection, related_credential, code, redirect_uri)
            except ProviderError as e:
                increment_metric("provider_errors_total", 1.0)
                logger.warning("provider_finalize_failed", extra={"error_code": e.code.value, "error": e.message})
                raise
            logger.info(
                "provider_finalize_ok",
                extra={
                    "duration_ms": round((time.perf_counter() - t0) * 1000.0, 2),
                    "has_expiry": result.access_token_expiry is not None,
                    "has_refresh_token": result.refresh_token is not None,
                },
            )
            return result

    # PUBLIC_INTERFACE
    async def refresh(self, connection: Connection, related_credential: Optional[Credential]) -> RefreshResult:
        """Route a token renewal to the connection's provider."""
        provider = self.get(connection.provider)
        with lifecycle_context(connection.provider.value, connection.connection_id):
            increment_metric("refresh_total", 1.0)
            try:
                result = await provider.refresh(connection, related_credential)
            except ProviderError as e:
                increment_metric("provider_errors_total", 1.0)
                logger.warning("provider_refresh_failed", extra={"error_code": e.code.value, "error": e.message})
                raise
            logger.info("provider_refresh_ok", extra={"has_expiry": result.access_token_expiry is not None})
            return result

    # PUBLIC_INTERFACE
    def scrubbed_raw_json(self, provider_id: ConnectionProvider, raw_json: Any) -> Dict[str, Any]:
        """Scrub a raw vendor payload with the provider's own scrub list."""
        return self.get(provider_id).scrubbed_raw_json(raw_json)
