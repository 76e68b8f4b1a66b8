from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from ...core.security import basic_auth_header
from ...core.settings import OAuthClientCredentials
from ..connection import Connection, ConnectionProvider, FinalizeResult, RefreshResult
from ..credential import Credential
from ..errors import ActionNotSupportedError, InvalidCredentialsError, InvalidResponseError
from ..executor import RequestExecutor
from .base import FORM_HEADERS, Provider

SLACK_TOKEN_URL = "https://slack.com/api/oauth.v2.access"

# Slack `error` values that mean our client id/secret are wrong.
_CLIENT_CREDENTIAL_ERRORS = frozenset({"invalid_client_id", "bad_client_secret"})


class SlackConnectionProvider(Provider):
    """Slack OAuth v2. Errors arrive as HTTP 200 with `ok: false`; tokens do not expire."""

    id = ConnectionProvider.SLACK
    scrubbed_fields = (
        "access_token",
        "refresh_token",
        "authed_user.access_token",
        "authed_user.refresh_token",
        "incoming_webhook.url",
    )

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
            SLACK_TOKEN_URL,
            headers={**FORM_HEADERS, "Authorization": self._authorization},
            data={"code": code, "redirect_uri": redirect_uri},
        )
        raw_json = await self._exchange(request)
        self._check_ok(raw_json)
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
        raise ActionNotSupportedError("Slack access tokens do not expire")

    def _check_ok(self, raw_json: Dict[str, Any]) -> None:
        if raw_json.get("ok") is True:
            return
        error = raw_json.get("error") or "unknown_error"
        if error in _CLIENT_CREDENTIAL_ERRORS:
            raise InvalidCredentialsError(f"Slack rejected the client credentials: {error}")
        raise InvalidResponseError(f"Slack OAuth error: {error}")
