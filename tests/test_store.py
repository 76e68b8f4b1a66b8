# PUBLIC_INTERFACE
"""
ConnectionStore: sealed secrets and record round-trip.
"""
from datetime import datetime, timezone

import pytest
from pydantic import SecretStr

from unified_oauth.core.security import SealingError, get_fernet
from unified_oauth.oauth.connection import Connection, ConnectionProvider, ConnectionStatus
from unified_oauth.oauth.credential import Credential
from unified_oauth.oauth.errors import ConnectionNotFoundError
from unified_oauth.oauth.store import ConnectionStore


def _connection():
    return Connection(
        provider=ConnectionProvider.GOOGLE_DRIVE,
        status=ConnectionStatus.FINALIZED,
        metadata={"workspace": "acme"},
        authorization_code=SecretStr("code-123"),
        credential=Credential(
            access_token=SecretStr("access-abc"),
            access_token_expiry=datetime(2030, 1, 1, tzinfo=timezone.utc),
            refresh_token=SecretStr("refresh-xyz"),
        ),
        raw_json={"scope": "drive"},
    )


def test_round_trip_restores_secrets():
    store = ConnectionStore(get_fernet("k"))
    connection = _connection()
    store.save(connection)

    loaded = store.get(connection.connection_id)
    assert loaded.credential.access_token.get_secret_value() == "access-abc"
    assert loaded.credential.refresh_token.get_secret_value() == "refresh-xyz"
    assert loaded.authorization_code.get_secret_value() == "code-123"
    assert loaded.credential.access_token_expiry == datetime(2030, 1, 1, tzinfo=timezone.utc)
    assert loaded.metadata == {"workspace": "acme"}
    assert loaded.status == ConnectionStatus.FINALIZED


def test_secrets_are_not_stored_in_clear():
    store = ConnectionStore(get_fernet("k"))
    connection = _connection()
    store.save(connection)

    entry = store._store[connection.connection_id]
    assert b"access-abc" not in entry.secrets
    dumped = entry.model_dump_json()
    for secret in ("access-abc", "refresh-xyz", "code-123"):
        assert secret not in dumped


def test_get_returns_independent_copies():
    store = ConnectionStore(get_fernet("k"))
    connection = _connection()
    store.save(connection)

    copy = store.get(connection.connection_id)
    copy.status = ConnectionStatus.REVOKED
    assert store.get(connection.connection_id).status == ConnectionStatus.FINALIZED


def test_missing_connection():
    store = ConnectionStore(get_fernet("k"))
    with pytest.raises(ConnectionNotFoundError):
        store.get("con_missing")
    assert store.delete("con_missing") is False


def test_pending_connection_without_credential():
    store = ConnectionStore(get_fernet("k"))
    connection = Connection(provider=ConnectionProvider.NOTION)
    store.save(connection)
    loaded = store.get(connection.connection_id)
    assert loaded.credential is None
    assert loaded.authorization_code is None
    assert [c.connection_id for c in store.list()] == [connection.connection_id]


def test_foreign_key_cannot_unseal():
    store = ConnectionStore(get_fernet("k"))
    connection = _connection()
    store.save(connection)
    store._fernet = get_fernet("other")
    with pytest.raises(SealingError):
        store.get(connection.connection_id)


def test_list_and_delete():
    store = ConnectionStore(get_fernet("k"))
    first, second = _connection(), _connection()
    store.save(first)
    store.save(second)

    assert {c.connection_id for c in store.list()} == {first.connection_id, second.connection_id}
    assert store.delete(first.connection_id) is True
    assert store.delete(first.connection_id) is False
    assert [c.connection_id for c in store.list()] == [second.connection_id]
