# PUBLIC_INTERFACE
from __future__ import annotations

from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .api.models import SuccessResponse
from .api.routes import make_router
from .core.errors import install_error_handlers
from .core.logging import get_logger
from .core.observability import RequestContextMiddleware, metrics_snapshot
from .core.response import ok
from .core.security import get_fernet
from .core.settings import Settings, get_settings
from .oauth.executor import RequestExecutor
from .oauth.registry import ProviderRegistry
from .oauth.service import ConnectionService
from .oauth.store import ConnectionStore

logger = get_logger(__name__)


class HealthData(BaseModel):
    message: str = Field(..., description="Health status message")
    env: str = Field(..., description="Environment name")


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    """Create the FastAPI app with its registry, store and lifecycle service.

    Settings are loaded from the environment when not given; missing OAuth
    client credentials abort startup with ConfigurationError. `transport`
    replaces the outbound HTTP transport (tests use httpx.MockTransport).
    """
    settings = settings or get_settings()

    executor = RequestExecutor(settings.http, transport=transport)
    registry = ProviderRegistry.from_settings(settings, executor)
    store = ConnectionStore(get_fernet(settings.security.ENCRYPTION_KEY))
    service = ConnectionService(
        registry,
        store,
        refresh_buffer_seconds=settings.lifecycle.ACCESS_TOKEN_REFRESH_BUFFER_SECONDS,
    )

    app = FastAPI(
        title=settings.api.API_TITLE,
        description=settings.api.API_DESCRIPTION,
        version=settings.api.API_VERSION,
        openapi_tags=[
            {"name": "health", "description": "Health and metrics endpoints"},
            {"name": "Connections", "description": "OAuth connection lifecycle"},
        ],
    )
    app.state.settings = settings
    app.state.provider_registry = registry
    app.state.connection_service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware, logger=logger)
    install_error_handlers(app)

    @app.get(
        "/health",
        tags=["health"],
        summary="Liveness probe",
        description="Health check endpoint that returns service status and environment.",
        response_model=SuccessResponse[HealthData],
    )
    def health():
        return ok({"message": "Healthy", "env": settings.api.ENV})

    @app.get(
        "/_metrics",
        tags=["health"],
        summary="Metrics (basic)",
        description="Basic in-process counters and accumulators for observability.",
        response_model=SuccessResponse[dict],
    )
    def metrics():
        return ok(metrics_snapshot())

    app.include_router(make_router())
    logger.info("app_created", extra={"providers": [p["id"] for p in registry.list_public()]})
    return app
