# PUBLIC_INTERFACE
"""
Google Drive and Confluence adapters: expiring tokens and refresh-token grants.
"""
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs

import json
import pytest
from pydantic import SecretStr

from unified_oauth.oauth.connection import Connection, ConnectionProvider
from unified_oauth.oauth.credential import Credential
from unified_oauth.oauth.errors import ActionNotSupportedError, TokenRevokedError
from unified_oauth.oauth.providers.confluence import ATLASSIAN_TOKEN_URL, ConfluenceConnectionProvider
from unified_oauth.oauth.providers.google_drive import GOOGLE_TOKEN_URL, GoogleDriveConnectionProvider

from conftest import FakeVendor, make_executor


def _finalized(provider: ConnectionProvider, refresh_token="rt-1"):
    return Connection(
        provider=provider,
        credential=Credential(
            access_token=SecretStr("old-access"),
            access_token_expiry=datetime.now(timezone.utc) - timedelta(minutes=1),
            refresh_token=SecretStr(refresh_token) if refresh_token else None,
        ),
    )


def _form(request):
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


@pytest.mark.asyncio
async def test_google_finalize_returns_expiry_and_refresh_token(settings):
    vendor = FakeVendor((200, {"access_token": "ya29", "expires_in": 3599, "refresh_token": "1//rt", "id_token": "jwt", "scope": "drive"}))
    provider = GoogleDriveConnectionProvider(settings.oauth.google_drive, make_executor(vendor, settings))

    before = datetime.now(timezone.utc)
    result = await provider.finalize(Connection(provider=ConnectionProvider.GOOGLE_DRIVE), None, "c0de", "https://app/cb")

    assert result.access_token == "ya29"
    assert result.refresh_token == "1//rt"
    assert before + timedelta(minutes=50) < result.access_token_expiry <= before + timedelta(seconds=3600)
    assert provider.scrubbed_raw_json(result.raw_json) == {"expires_in": 3599, "scope": "drive"}

    req = vendor.requests[0]
    assert str(req.url) == GOOGLE_TOKEN_URL
    assert req.headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert "Authorization" not in req.headers
    assert _form(req) == {
        "grant_type": "authorization_code",
        "client_id": "google-id",
        "client_secret": "google-secret",
        "code": "c0de",
        "redirect_uri": "https://app/cb",
    }


@pytest.mark.asyncio
async def test_google_refresh_keeps_refresh_token_when_not_rotated(settings):
    vendor = FakeVendor((200, {"access_token": "new-access", "expires_in": 3600}))
    provider = GoogleDriveConnectionProvider(settings.oauth.google_drive, make_executor(vendor, settings))

    result = await provider.refresh(_finalized(ConnectionProvider.GOOGLE_DRIVE), None)

    assert result.access_token == "new-access"
    assert result.refresh_token == "rt-1"
    assert _form(vendor.requests[0])["grant_type"] == "refresh_token"
    assert _form(vendor.requests[0])["refresh_token"] == "rt-1"


@pytest.mark.asyncio
async def test_google_refresh_without_refresh_token(settings):
    vendor = FakeVendor()
    provider = GoogleDriveConnectionProvider(settings.oauth.google_drive, make_executor(vendor, settings))
    with pytest.raises(ActionNotSupportedError):
        await provider.refresh(_finalized(ConnectionProvider.GOOGLE_DRIVE, refresh_token=None), None)
    assert vendor.requests == []


@pytest.mark.asyncio
async def test_google_refresh_invalid_grant_is_token_revoked(settings):
    vendor = FakeVendor((400, {"error": "invalid_grant", "error_description": "Token has been expired or revoked."}))
    provider = GoogleDriveConnectionProvider(settings.oauth.google_drive, make_executor(vendor, settings))
    with pytest.raises(TokenRevokedError):
        await provider.refresh(_finalized(ConnectionProvider.GOOGLE_DRIVE), None)


@pytest.mark.asyncio
async def test_confluence_refresh_rotates_refresh_token(settings):
    vendor = FakeVendor((200, {"access_token": "atl-new", "expires_in": 3600, "refresh_token": "rt-2", "scope": "read:confluence-content.all"}))
    provider = ConfluenceConnectionProvider(settings.oauth.confluence, make_executor(vendor, settings))

    result = await provider.refresh(_finalized(ConnectionProvider.CONFLUENCE), None)

    assert result.refresh_token == "rt-2"
    assert provider.scrubbed_raw_json(result.raw_json) == {"expires_in": 3600, "scope": "read:confluence-content.all"}
    req = vendor.requests[0]
    assert str(req.url) == ATLASSIAN_TOKEN_URL
    assert json.loads(req.content) == {
        "grant_type": "refresh_token",
        "client_id": "atl-id",
        "client_secret": "atl-secret",
        "refresh_token": "rt-1",
    }


@pytest.mark.asyncio
async def test_confluence_403_unauthorized_client_is_token_revoked(settings):
    vendor = FakeVendor((403, {"error": "unauthorized_client", "error_description": "refresh_token is invalid"}))
    provider = ConfluenceConnectionProvider(settings.oauth.confluence, make_executor(vendor, settings))
    with pytest.raises(TokenRevokedError) as exc:
        await provider.refresh(_finalized(ConnectionProvider.CONFLUENCE), None)
    assert exc.value.status_code == 403
