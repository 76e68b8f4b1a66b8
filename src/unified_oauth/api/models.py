from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from ..oauth.connection import Connection, ConnectionProvider, ConnectionStatus

T = TypeVar("T")


class SuccessResponse(BaseModel, Generic[T]):
    """Standard success envelope."""
    status: str = Field("ok", description="Always 'ok'")
    data: T
    meta: Dict[str, Any] = Field(default_factory=dict)


class CreateConnectionRequest(BaseModel):
    provider: ConnectionProvider = Field(..., description="Vendor to connect to")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Non-secret metadata stored with the connection")


class FinalizeConnectionRequest(BaseModel):
    code: str = Field(..., min_length=1, description="Authorization code returned by the vendor consent flow")
    redirect_uri: str = Field(..., min_length=1, description="Redirect URI used when obtaining the code")


class ConnectionView(BaseModel):
    """Public view of a connection. Never carries token material."""
    connection_id: str
    provider: ConnectionProvider
    status: ConnectionStatus
    created: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)
    redirect_uri: Optional[str] = None
    access_token_expiry: Optional[datetime] = None
    has_refresh_token: bool = False
    credential_invalidated_at: Optional[datetime] = None
    raw_json: Optional[Dict[str, Any]] = Field(default=None, description="Scrubbed vendor payload")
    finalized_at: Optional[datetime] = None
    refreshed_at: Optional[datetime] = None
    last_error: Optional[str] = None

    @classmethod
    def from_connection(cls, connection: Connection) -> "ConnectionView":
        credential = connection.credential
        return cls(
            connection_id=connection.connection_id,
            provider=connection.provider,
            status=connection.status,
            created=connection.created,
            metadata=connection.metadata,
            redirect_uri=connection.redirect_uri,
            access_token_expiry=credential.access_token_expiry if credential else None,
            has_refresh_token=bool(credential and credential.refresh_token),
            credential_invalidated_at=credential.invalidated_at if credential else None,
            raw_json=connection.raw_json,
            finalized_at=connection.finalized_at,
            refreshed_at=connection.refreshed_at,
            last_error=connection.last_error,
        )


class AccessTokenView(BaseModel):
    """Access token handed to internal callers that talk to the vendor."""
    connection_id: str
    provider: ConnectionProvider
    access_token: str
    access_token_expiry: Optional[datetime] = None
    scrubbed_raw_json: Optional[Dict[str, Any]] = None

    @classmethod
    def from_connection(cls, connection: Connection) -> "AccessTokenView":
        credential = connection.credential
        return cls(
            connection_id=connection.connection_id,
            provider=connection.provider,
            access_token=credential.access_token.get_secret_value(),
            access_token_expiry=credential.access_token_expiry,
            scrubbed_raw_json=connection.raw_json,
        )
