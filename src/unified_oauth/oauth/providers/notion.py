from __future__ import annotations

from typing import Optional

import httpx

from ...core.security import basic_auth_header
from ...core.settings import OAuthClientCredentials
from ..connection import Connection, ConnectionProvider, FinalizeResult, RefreshResult
from ..credential import Credential
from ..errors import ActionNotSupportedError
from ..executor import RequestExecutor
from .base import JSON_HEADERS, Provider

NOTION_TOKEN_URL = "https://api.notion.com/v1/oauth/token"


class NotionConnectionProvider(Provider):
    """Notion public integrations: Basic-auth JSON exchange, tokens never expire."""

    id = ConnectionProvider.NOTION

    def __init__(self, credentials: OAuthClientCredentials, executor: RequestExecutor):
        super().__init__(executor)
        self._authorization = basic_auth_header(credentials.client_id, credentials.client_secret)

    async def finalize(
        self,
        connection: Connection,
        related_credential: Optional[Credential],
        code: str,
        redirect_uri: str,
    ) -> FinalizeResult:
        request = httpx.Request(
            "POST",
            NOTION_TOKEN_URL,
            headers={**JSON_HEADERS, "Authorization": self._authorization},
            json={
                "grant_type": "authorization_code",
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
            access_token_expiry=None,
            refresh_token=None,
            raw_json=raw_json,
        )

    async def refresh(self, connection: Connection, related_credential: Optional[Credential]) -> RefreshResult:
        raise ActionNotSupportedError("Notion access tokens do not expire")
