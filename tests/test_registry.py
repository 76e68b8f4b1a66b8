# PUBLIC_INTERFACE
"""
ProviderRegistry: eager construction, exhaustiveness and dispatch.
"""
import pytest

from unified_oauth.core.observability import metrics_snapshot
from unified_oauth.oauth.connection import Connection, ConnectionProvider
from unified_oauth.oauth.errors import ActionNotSupportedError
from unified_oauth.oauth.providers import NotionConnectionProvider, SlackConnectionProvider
from unified_oauth.oauth.registry import ProviderRegistry

from conftest import FakeVendor, make_executor


def test_from_settings_builds_every_provider(settings):
    registry = ProviderRegistry.from_settings(settings, make_executor(FakeVendor(), settings))
    for provider_id in ConnectionProvider:
        assert registry.get(provider_id).id == provider_id
    assert {p["id"] for p in registry.list_public()} == {p.value for p in ConnectionProvider}


def test_get_accepts_enum_values(settings):
    registry = ProviderRegistry.from_settings(settings, make_executor(FakeVendor(), settings))
    assert isinstance(registry.get("notion"), NotionConnectionProvider)


def test_unknown_provider_is_key_error(settings):
    registry = ProviderRegistry.from_settings(settings, make_executor(FakeVendor(), settings))
    with pytest.raises(KeyError):
        registry.get("dropbox")


def test_incomplete_registry_is_rejected(settings):
    executor = make_executor(FakeVendor(), settings)
    with pytest.raises(RuntimeError):
        ProviderRegistry({ConnectionProvider.NOTION: NotionConnectionProvider(settings.oauth.notion, executor)})


def test_provider_registered_under_wrong_id_is_rejected(settings):
    executor = make_executor(FakeVendor(), settings)
    registry = ProviderRegistry.from_settings(settings, executor)
    providers = {p: registry.get(p) for p in ConnectionProvider}
    providers[ConnectionProvider.NOTION] = SlackConnectionProvider(settings.oauth.slack, executor)
    with pytest.raises(RuntimeError):
        ProviderRegistry(providers)


@pytest.mark.asyncio
async def test_dispatch_routes_by_connection_provider(settings):
    vendor = FakeVendor((200, {"access_token": "tok_x", "workspace_id": "w1"}))
    registry = ProviderRegistry.from_settings(settings, make_executor(vendor, settings))
    connection = Connection(provider=ConnectionProvider.NOTION)
    before = metrics_snapshot()

    result = await registry.finalize(connection, None, "abc123", "https://app/cb")
    assert registry.scrubbed_raw_json(ConnectionProvider.NOTION, result.raw_json) == {"workspace_id": "w1"}

    with pytest.raises(ActionNotSupportedError):
        await registry.refresh(connection, None)

    after = metrics_snapshot()
    assert after["finalize_total"] == before["finalize_total"] + 1
    assert after["refresh_total"] == before["refresh_total"] + 1
    assert after["provider_errors_total"] == before["provider_errors_total"] + 1
