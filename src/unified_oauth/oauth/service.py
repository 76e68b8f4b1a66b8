from __future__ import annotations

import asyncio
import weakref
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import SecretStr

from ..core.logging import get_logger
from ..core.observability import lifecycle_context
from ..core.security import expires_within
from .connection import Connection, ConnectionProvider, ConnectionStatus
from .credential import Credential
from .errors import (
    PERMANENT_REFRESH_ERRORS,
    ActionNotSupportedError,
    ConnectionStateError,
    ProviderError,
)
from .registry import ProviderRegistry
from .store import ConnectionStore

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConnectionService:
    """Applies provider lifecycle results to stored connections.

    Raw vendor payloads are scrubbed before they reach the store. Finalize, refresh
    and revoke on the same connection are serialised with a per-connection lock;
    calls on different connections run concurrently.
    """

    def __init__(self, registry: ProviderRegistry, store: ConnectionStore, refresh_buffer_seconds: int = 600):
        self.registry = registry
        self.store = store
        self.refresh_buffer_seconds = refresh_buffer_seconds
        # Entries vanish once no caller holds or awaits the lock
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, connection_id: str) -> asyncio.Lock:
        # Unknown ids raise ConnectionNotFoundError before a lock is created
        self.store.get(connection_id)
        lock = self._locks.get(connection_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[connection_id] = lock
        return lock

    # PUBLIC_INTERFACE
    def create_connection(self, provider: ConnectionProvider, metadata: Optional[Dict[str, Any]] = None) -> Connection:
        """Create a pending connection awaiting its authorization code."""
        connection = Connection(provider=provider, metadata=metadata or {})
        self.store.save(connection)
        with lifecycle_context(provider.value, connection.connection_id):
            logger.info("connection_created")
        return connection

    # PUBLIC_INTERFACE
    def get_connection(self, connection_id: str) -> Connection:
        return self.store.get(connection_id)

    # PUBLIC_INTERFACE
    async def finalize_connection(
        self,
        connection_id: str,
        code: str,
        redirect_uri: str,
        related_credential: Optional[Credential] = None,
    ) -> Connection:
        """Exchange code for a credential and move the connection to `finalized`.

        Repeating the call with the code the connection was finalized with is
        a no-op; any other transition out of `pending` is a ConnectionStateError.
        """
        async with self._lock_for(connection_id):
            connection = self.store.get(connection_id)
            if connection.is_already_finalized(code):
                return connection
            if connection.status != ConnectionStatus.PENDING:
                raise ConnectionStateError(
                    f"Connection '{connection_id}' is {connection.status.value} and cannot be finalized"
                )

            try:
                result = await self.registry.finalize(connection, related_credential, code, redirect_uri)
            except ProviderError as e:
                connection.last_error = e.message
                self.store.save(connection)
                raise

            now = _utcnow()
            connection.raw_json = self.registry.scrubbed_raw_json(connection.provider, result.raw_json)
            connection.credential = Credential(
                access_token=SecretStr(result.access_token),
                access_token_expiry=result.access_token_expiry,
                refresh_token=SecretStr(result.refresh_token) if result.refresh_token else None,
            )
            connection.authorization_code = SecretStr(code)
            connection.redirect_uri = result.redirect_uri
            connection.status = ConnectionStatus.FINALIZED
            connection.finalized_at = now
            connection.last_error = None
            self.store.save(connection)
            return connection

    # PUBLIC_INTERFACE
    async def get_access_token(self, connection_id: str, related_credential: Optional[Credential] = None) -> Connection:
        """Return the finalized connection, refreshing its credential first when it is about to expire."""
        async with self._lock_for(connection_id):
            connection = self.store.get(connection_id)
            credential = self._active_credential(connection)
            if expires_within(credential.access_token_expiry, self.refresh_buffer_seconds):
                connection = await self._refresh(connection, related_credential)
            return connection

    # PUBLIC_INTERFACE
    async def refresh_connection(self, connection_id: str, related_credential: Optional[Credential] = None) -> Connection:
        """Force a token renewal regardless of expiry."""
        async with self._lock_for(connection_id):
            connection = self.store.get(connection_id)
            self._active_credential(connection)
            return await self._refresh(connection, related_credential)

    # PUBLIC_INTERFACE
    async def revoke_connection(self, connection_id: str) -> Connection:
        """Logically revoke the connection; its credential is invalidated, not deleted.

        Waits for an in-flight finalize or refresh on the same connection.
        """
        async with self._lock_for(connection_id):
            connection = self.store.get(connection_id)
            if connection.status == ConnectionStatus.REVOKED:
                return connection
            if connection.credential is not None and connection.credential.invalidated_at is None:
                connection.credential.invalidated_at = _utcnow()
            connection.status = ConnectionStatus.REVOKED
            self.store.save(connection)
        with lifecycle_context(connection.provider.value, connection_id):
            logger.info("connection_revoked")
        return connection

    def _active_credential(self, connection: Connection) -> Credential:
        if connection.status != ConnectionStatus.FINALIZED or connection.credential is None:
            raise ConnectionStateError(
                f"Connection '{connection.connection_id}' is {connection.status.value}, no active credential"
            )
        if not connection.credential.is_valid:
            raise ConnectionStateError(f"Connection '{connection.connection_id}' credential was invalidated")
        return connection.credential

    async def _refresh(self, connection: Connection, related_credential: Optional[Credential]) -> Connection:
        try:
            result = await self.registry.refresh(connection, related_credential)
        except PERMANENT_REFRESH_ERRORS as e:
            connection.credential.invalidated_at = _utcnow()
            connection.status = ConnectionStatus.ERRORED
            connection.last_error = e.message
            self.store.save(connection)
            with lifecycle_context(connection.provider.value, connection.connection_id):
                logger.warning("connection_credential_invalidated", extra={"error_code": e.code.value})
            raise
        except ActionNotSupportedError:
            raise
        except ProviderError as e:
            connection.last_error = e.message
            self.store.save(connection)
            raise

        credential = connection.credential
        credential.access_token = SecretStr(result.access_token)
        credential.access_token_expiry = result.access_token_expiry
        if result.refresh_token:
            credential.refresh_token = SecretStr(result.refresh_token)
        connection.raw_json = self.registry.scrubbed_raw_json(connection.provider, result.raw_json)
        connection.refreshed_at = _utcnow()
        connection.last_error = None
        self.store.save(connection)
        return connection
