from __future__ import annotations

from typing import Any, List, Tuple

import httpx
import pytest

from unified_oauth.core.settings import (
    HTTPSettings,
    LifecycleSettings,
    OAuthClientCredentials,
    OAuthSettings,
    SecuritySettings,
    Settings,
)
from unified_oauth.oauth.executor import RequestExecutor


def make_settings(refresh_buffer_seconds: int = 600) -> Settings:
    return Settings(
        security=SecuritySettings(ENCRYPTION_KEY="test-encryption-key"),
        oauth=OAuthSettings(
            notion=OAuthClientCredentials(client_id="notion-id", client_secret="notion-secret"),
            slack=OAuthClientCredentials(client_id="slack-id", client_secret="slack-secret"),
            google_drive=OAuthClientCredentials(client_id="google-id", client_secret="google-secret"),
            confluence=OAuthClientCredentials(client_id="atl-id", client_secret="atl-secret"),
        ),
        http=HTTPSettings(TIMEOUT_SECONDS=5.0, RETRY_ATTEMPTS=3, RETRY_BASE_SLEEP=0.0),
        lifecycle=LifecycleSettings(ACCESS_TOKEN_REFRESH_BUFFER_SECONDS=refresh_buffer_seconds),
    )


class FakeVendor:
    """Token endpoint double: records requests and replays queued (status, body) answers.

    A body that is an Exception instance is raised instead of answered.
    """

    def __init__(self, *responses: Tuple[int, Any]):
        self.responses: List[Tuple[int, Any]] = list(responses)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected vendor call to {request.url}")
        status, body = self.responses.pop(0)
        if isinstance(body, Exception):
            raise body
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, text=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


def make_executor(vendor: FakeVendor, settings: Settings) -> RequestExecutor:
    return RequestExecutor(settings.http, transport=vendor.transport)
