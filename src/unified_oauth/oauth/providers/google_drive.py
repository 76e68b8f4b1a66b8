from __future__ import annotations

from typing import Optional

import httpx

from ...core.settings import OAuthClientCredentials
from ..connection import Connection, ConnectionProvider, FinalizeResult, RefreshResult
from ..credential import Credential
from ..errors import ActionNotSupportedError
from ..executor import RequestExecutor
from .base import FORM_HEADERS, Provider

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"


class GoogleDriveConnectionProvider(Provider):
    """Google OAuth 2.0 for Drive. Access tokens expire; refresh tokens are not rotated."""

    id = ConnectionProvider.GOOGLE_DRIVE
    scrubbed_fields = ("access_token", "refresh_token", "id_token")

    def __init__(self, credentials: OAuthClientCredentials, executor: RequestExecutor):
        super().__init__(executor)
        self._credentials = credentials

    async def finalize(
        self,
        connection: Connection,
        related_credential: Optional[Credential],
        code: str,
        redirect_uri: str,
    ) -> FinalizeResult:
        request = httpx.Request(
            "POST",
            GOOGLE_TOKEN_URL,
            headers=FORM_HEADERS,
            data={
                "grant_type": "authorization_code",
                "client_id": self._credentials.client_id,
                "client_secret": self._credentials.client_secret,
                "code": code,
                "redirect_uri": redirect_uri,
            },
        )
        raw_json = await self._exchange(request)
        access_token = self._access_token(raw_json)

        return FinalizeResult(
            redirect_uri=redirect_uri,
            code=code,
            access_token=access_token,
            access_token_expiry=self._access_token_expiry(raw_json),
            refresh_token=self._optional_str(raw_json, "refresh_token"),
            raw_json=raw_json,
        )

    async def refresh(self, connection: Connection, related_credential: Optional[Credential]) -> RefreshResult:
        refresh_token = connection.credential.unsealed_refresh_token() if connection.credential else None
        if not refresh_token:
            raise ActionNotSupportedError("Google Drive connection has no refresh token")

        request = httpx.Request(
            "POST",
            GOOGLE_TOKEN_URL,
            headers=FORM_HEADERS,
            data={
                "grant_type": "refresh_token",
                "client_id": self._credentials.client_id,
                "client_secret": self._credentials.client_secret,
                "refresh_token": refresh_token,
            },
        )
        raw_json = await self._exchange(request)
        access_token = self._access_token(raw_json)

        return RefreshResult(
            access_token=access_token,
            access_token_expiry=self._access_token_expiry(raw_json),
            # Google only returns a new refresh token when it rotates one
            refresh_token=self._optional_str(raw_json, "refresh_token") or refresh_token,
            raw_json=raw_json,
        )
