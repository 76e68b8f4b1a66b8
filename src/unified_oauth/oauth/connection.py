from __future__ import annotations

import secrets
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, SecretStr

from .credential import Credential


class ConnectionProvider(str, Enum):
    """Vendors a connection can be established with. Routing key for the registry."""

    NOTION = "notion"
    SLACK = "slack"
    GOOGLE_DRIVE = "google_drive"
    CONFLUENCE = "confluence"


class ConnectionStatus(str, Enum):
    PENDING = "pending"
    FINALIZED = "finalized"
    ERRORED = "errored"
    REVOKED = "revoked"


def _new_connection_id() -> str:
    return f"con_{secrets.token_hex(16)}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Connection(BaseModel):
    """One link between the platform and a vendor account."""

    connection_id: str = Field(default_factory=_new_connection_id, description="Stable connection identifier")
    provider: ConnectionProvider = Field(..., description="Vendor this connection belongs to")
    created: datetime = Field(default_factory=_utcnow, description="Creation time (UTC)")
    status: ConnectionStatus = Field(default=ConnectionStatus.PENDING, description="Lifecycle status")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Caller-supplied, non-secret metadata")
    redirect_uri: Optional[str] = Field(default=None, description="Redirect URI used at finalization")
    authorization_code: Optional[SecretStr] = Field(default=None, description="Code the connection was finalized with")
    credential: Optional[Credential] = Field(default=None, description="Active token material")
    raw_json: Optional[Dict[str, Any]] = Field(default=None, description="Scrubbed vendor payload from the last exchange")
    finalized_at: Optional[datetime] = None
    refreshed_at: Optional[datetime] = None
    last_error: Optional[str] = None

    def is_already_finalized(self, code: str) -> bool:
        """True if this connection was finalized with exactly this authorization code."""
        return (
            self.status == ConnectionStatus.FINALIZED
            and self.authorization_code is not None
            and secrets.compare_digest(self.authorization_code.get_secret_value(), code)
        )


class FinalizeResult(BaseModel):
    """Outcome of an authorization-code exchange.

    raw_json is the unscrubbed vendor payload; scrub it before storing or logging.
    """

    redirect_uri: str
    code: str = Field(..., repr=False)
    access_token: str = Field(..., repr=False)
    access_token_expiry: Optional[datetime] = None
    refresh_token: Optional[str] = Field(default=None, repr=False)
    raw_json: Dict[str, Any] = Field(..., repr=False)


class RefreshResult(BaseModel):
    """Outcome of a token renewal. raw_json is unscrubbed."""

    access_token: str = Field(..., repr=False)
    access_token_expiry: Optional[datetime] = None
    refresh_token: Optional[str] = Field(default=None, repr=False)
    raw_json: Dict[str, Any] = Field(..., repr=False)
