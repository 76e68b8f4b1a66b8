from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, SecretStr


class Credential(BaseModel):
    """Token material backing a Connection.

    Secrets are SecretStr so repr(), str() and JSON dumps never show them;
    call get_secret_value() at the point of use.
    """

    access_token: SecretStr = Field(..., description="Current access token")
    access_token_expiry: Optional[datetime] = Field(default=None, description="Expiry of the access token; None if it never expires")
    refresh_token: Optional[SecretStr] = Field(default=None, description="Refresh token, when the vendor issues one")
    invalidated_at: Optional[datetime] = Field(default=None, description="Set once the credential can no longer be used")

    @property
    def is_valid(self) -> bool:
        return self.invalidated_at is None

    def unsealed_refresh_token(self) -> Optional[str]:
        return self.refresh_token.get_secret_value() if self.refresh_token else None
