from __future__ import annotations

from typing import Optional

import httpx

from ...core.settings import OAuthClientCredentials
from ..connection import Connection, ConnectionProvider, FinalizeResult, RefreshResult
from ..credential import Credential
from ..errors import ActionNotSupportedError, ProviderError, TokenRevokedError
from ..executor import RequestExecutor, TransportError, TransportErrorKind
from .base import JSON_HEADERS, Provider

ATLASSIAN_TOKEN_URL = "https://auth.atlassian.com/oauth/token"


class ConfluenceConnectionProvider(Provider):
    """Atlassian OAuth 2.0 (3LO) for Confluence Cloud. Refresh tokens rotate on every refresh."""

    id = ConnectionProvider.CONFLUENCE
    scrubbed_fields = ("access_token", "refresh_token")

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
            ATLASSIAN_TOKEN_URL,
            headers=JSON_HEADERS,
            json={
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
            raise ActionNotSupportedError("Confluence connection has no refresh token")

        request = httpx.Request(
            "POST",
            ATLASSIAN_TOKEN_URL,
            headers=JSON_HEADERS,
            json={
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
            # Rotating tokens replace the spent one; non-rotating apps keep theirs
            refresh_token=self._optional_str(raw_json, "refresh_token") or refresh_token,
            raw_json=raw_json,
        )

    def handle_provider_request_error(self, error: TransportError) -> ProviderError:
        # Atlassian answers 403 with `unauthorized_client` for expired or reused refresh tokens
        if error.kind == TransportErrorKind.HTTP_STATUS and error.status_code == 403:
            body = error.json_body()
            if isinstance(body, dict) and body.get("error") in ("unauthorized_client", "invalid_grant"):
                return TokenRevokedError("Confluence refresh token is expired or revoked", status_code=403)
        return super().handle_provider_request_error(error)
