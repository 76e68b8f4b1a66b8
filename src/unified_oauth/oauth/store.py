# PUBLIC_INTERFACE
"""
Thread-safe in-memory connection store.

- Secrets (access token, refresh token, authorization code) are sealed with
  Fernet in one blob per record; everything else is kept as plain data.
- No persistence; ephemeral only. Swap for a database-backed store in production.
"""
from __future__ import annotations

import json
import threading
from typing import Dict, List, Optional

from cryptography.fernet import Fernet
from pydantic import BaseModel, SecretStr

from ..core.security import seal, unseal
from .connection import Connection
from .credential import Credential
from .errors import ConnectionNotFoundError


class _Entry(BaseModel):
    record: Dict
    # sealed {"access_token", "refresh_token", "authorization_code"}
    secrets: bytes


def _secret(value: Optional[SecretStr]) -> Optional[str]:
    return value.get_secret_value() if value is not None else None


class ConnectionStore:
    def __init__(self, fernet: Fernet) -> None:
        self._fernet = fernet
        self._lock = threading.RLock()
        self._store: Dict[str, _Entry] = {}

    def _to_entry(self, connection: Connection) -> _Entry:
        credential = connection.credential
        secrets = {
            "access_token": _secret(credential.access_token) if credential else None,
            "refresh_token": _secret(credential.refresh_token) if credential else None,
            "authorization_code": _secret(connection.authorization_code),
        }
        record = connection.model_dump(mode="json", exclude={"authorization_code", "credential"})
        if credential is not None:
            record["credential"] = credential.model_dump(mode="json", exclude={"access_token", "refresh_token"})
        return _Entry(record=record, secrets=seal(self._fernet, json.dumps(secrets).encode("utf-8")))

    def _from_entry(self, entry: _Entry) -> Connection:
        secrets = json.loads(unseal(self._fernet, entry.secrets).decode("utf-8"))
        record = dict(entry.record)
        credential_record = record.pop("credential", None)
        if credential_record is not None:
            record["credential"] = Credential(
                **credential_record,
                access_token=secrets["access_token"],
                refresh_token=secrets["refresh_token"],
            )
        record["authorization_code"] = secrets["authorization_code"]
        return Connection.model_validate(record)

    # PUBLIC_INTERFACE
    def save(self, connection: Connection) -> None:
        """Insert or replace a connection record."""
        entry = self._to_entry(connection)
        with self._lock:
            self._store[connection.connection_id] = entry

    # PUBLIC_INTERFACE
    def get(self, connection_id: str) -> Connection:
        """Return a fresh copy of the stored connection, or raise ConnectionNotFoundError."""
        with self._lock:
            entry = self._store.get(connection_id)
        if entry is None:
            raise ConnectionNotFoundError(connection_id)
        return self._from_entry(entry)

    # PUBLIC_INTERFACE
    def list(self) -> List[Connection]:
        with self._lock:
            entries = list(self._store.values())
        return [self._from_entry(e) for e in entries]

    # PUBLIC_INTERFACE
    def delete(self, connection_id: str) -> bool:
        with self._lock:
            return self._store.pop(connection_id, None) is not None
