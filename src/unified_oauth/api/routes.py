from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request

from ..core.response import ok
from ..oauth.registry import ProviderRegistry
from ..oauth.service import ConnectionService
from .models import (
    AccessTokenView,
    ConnectionView,
    CreateConnectionRequest,
    FinalizeConnectionRequest,
    SuccessResponse,
)


def get_service(request: Request) -> ConnectionService:
    return request.app.state.connection_service


def get_registry(request: Request) -> ProviderRegistry:
    return request.app.state.provider_registry


# PUBLIC_INTERFACE
def make_router() -> APIRouter:
    """Connection lifecycle endpoints."""
    router = APIRouter(tags=["Connections"])

    @router.get(
        "/providers",
        summary="List providers",
        description="List supported OAuth providers and the payload fields each one scrubs.",
        response_model=SuccessResponse[List[Dict[str, Any]]],
    )
    def list_providers(registry: ProviderRegistry = Depends(get_registry)):
        return ok(registry.list_public())

    @router.post(
        "/connections",
        summary="Create connection",
        description="Create a pending connection awaiting an authorization code.",
        response_model=SuccessResponse[ConnectionView],
    )
    def create_connection(body: CreateConnectionRequest, service: ConnectionService = Depends(get_service)):
        connection = service.create_connection(body.provider, body.metadata)
        return ok(ConnectionView.from_connection(connection))

    @router.get(
        "/connections/{connection_id}",
        summary="Get connection",
        description="Return the public view of a connection (no token material).",
        response_model=SuccessResponse[ConnectionView],
        responses={404: {"description": "Connection not found"}},
    )
    def get_connection(connection_id: str, service: ConnectionService = Depends(get_service)):
        return ok(ConnectionView.from_connection(service.get_connection(connection_id)))

    @router.post(
        "/connections/{connection_id}/finalize",
        summary="Finalize connection",
        description="Exchange the authorization code for a credential.",
        response_model=SuccessResponse[ConnectionView],
        responses={404: {"description": "Connection not found"}, 409: {"description": "Invalid state"}, 502: {"description": "Vendor error"}},
    )
    async def finalize_connection(
        connection_id: str,
        body: FinalizeConnectionRequest,
        service: ConnectionService = Depends(get_service),
    ):
        connection = await service.finalize_connection(connection_id, body.code, body.redirect_uri)
        return ok(ConnectionView.from_connection(connection))

    @router.post(
        "/connections/{connection_id}/access_token",
        summary="Get access token",
        description="Return a usable access token, refreshing it first when it is about to expire.",
        response_model=SuccessResponse[AccessTokenView],
        responses={401: {"description": "Credential revoked"}, 409: {"description": "No active credential"}},
    )
    async def access_token(connection_id: str, service: ConnectionService = Depends(get_service)):
        connection = await service.get_access_token(connection_id)
        return ok(AccessTokenView.from_connection(connection))

    @router.post(
        "/connections/{connection_id}/refresh",
        summary="Refresh connection",
        description="Force a token renewal. Fails with ACTION_NOT_SUPPORTED for vendors whose tokens never expire.",
        response_model=SuccessResponse[ConnectionView],
    )
    async def refresh_connection(connection_id: str, service: ConnectionService = Depends(get_service)):
        connection = await service.refresh_connection(connection_id)
        return ok(ConnectionView.from_connection(connection))

    @router.post(
        "/connections/{connection_id}/revoke",
        summary="Revoke connection",
        description="Logically revoke the connection and invalidate its credential.",
        response_model=SuccessResponse[ConnectionView],
    )
    async def revoke_connection(connection_id: str, service: ConnectionService = Depends(get_service)):
        connection = await service.revoke_connection(connection_id)
        return ok(ConnectionView.from_connection(connection))

    return router
