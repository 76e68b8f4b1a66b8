from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

import httpx

from ...core.logging import get_logger
from ...core.security import compute_expiry
from ..connection import Connection, ConnectionProvider, FinalizeResult, RefreshResult
from ..credential import Credential
from ..errors import (
    InvalidCredentialsError,
    InvalidResponseError,
    MalformedPayloadError,
    ProviderError,
    ProviderTransportError,
    TokenRevokedError,
)
from ..executor import RequestExecutor, TransportError, TransportErrorKind

logger = get_logger(__name__)

JSON_HEADERS = {"Accept": "application/json", "Content-Type": "application/json"}
FORM_HEADERS = {"Accept": "application/json", "Content-Type": "application/x-www-form-urlencoded"}


# PUBLIC_INTERFACE
class Provider(ABC):
    """Contract every vendor OAuth adapter satisfies.

    Instances hold only immutable configuration after construction and are
    shared across concurrent calls without locking.
    """

    id: ConnectionProvider

    # Fields holding token material, removed by scrubbed_raw_json. Dotted
    # paths address nested objects (e.g. "authed_user.access_token").
    scrubbed_fields: Tuple[str, ...] = ("access_token",)

    def __init__(self, executor: RequestExecutor):
        self.executor = executor

    # PUBLIC_INTERFACE
    @abstractmethod
    async def finalize(
        self,
        connection: Connection,
        related_credential: Optional[Credential],
        code: str,
        redirect_uri: str,
    ) -> FinalizeResult:
        """Exchange an authorization code for a token in exactly one round-trip."""
        raise NotImplementedError

    # PUBLIC_INTERFACE
    @abstractmethod
    async def refresh(self, connection: Connection, related_credential: Optional[Credential]) -> RefreshResult:
        """Renew the connection's access token, or raise ActionNotSupportedError."""
        raise NotImplementedError

    # PUBLIC_INTERFACE
    def scrubbed_raw_json(self, raw_json: Any) -> Dict[str, Any]:
        """Return a copy of raw_json with every token-bearing field removed.

        Pure and idempotent; the input is never mutated.
        """
        if not isinstance(raw_json, dict):
            raise MalformedPayloadError("invalid raw_json, not an object")
        scrubbed = copy.deepcopy(raw_json)
        for path in self.scrubbed_fields:
            *parents, leaf = path.split(".")
            node: Any = scrubbed
            for part in parents:
                node = node.get(part) if isinstance(node, dict) else None
            if isinstance(node, dict):
                node.pop(leaf, None)
        return scrubbed

    # PUBLIC_INTERFACE
    def handle_provider_request_error(self, error: TransportError) -> ProviderError:
        """Translate a transport failure into a provider-scoped error.

        Adapters override this to add vendor-specific interpretation; the
        default understands HTTP 401 and the standard OAuth `invalid_grant`.
        """
        if error.kind == TransportErrorKind.HTTP_STATUS:
            if error.status_code == 401:
                return InvalidCredentialsError(
                    f"{self.id.value} rejected the client credentials", status_code=error.status_code
                )
            body = error.json_body()
            if isinstance(body, dict) and body.get("error") == "invalid_grant":
                return TokenRevokedError(
                    f"{self.id.value} grant is invalid or revoked", status_code=error.status_code
                )
        return ProviderTransportError(error.message, status_code=error.status_code, retryable=error.retryable)

    async def _exchange(self, request: httpx.Request) -> Dict[str, Any]:
        """Run one token exchange and require a JSON object back."""
        try:
            raw_json = await self.executor.execute(self.id, request)
        except TransportError as e:
            raise self.handle_provider_request_error(e) from None
        if not isinstance(raw_json, dict):
            raise InvalidResponseError(f"Unexpected non-object response from {self.id.value}")
        return raw_json

    def _access_token(self, raw_json: Dict[str, Any]) -> str:
        access_token = raw_json.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise InvalidResponseError(f"Missing `access_token` in response from {self.id.value}")
        return access_token

    def _access_token_expiry(self, raw_json: Dict[str, Any]) -> Optional[datetime]:
        expires_in = raw_json.get("expires_in")
        if expires_in is None:
            return None
        try:
            return compute_expiry(int(expires_in))
        except (TypeError, ValueError):
            raise InvalidResponseError(f"Invalid `expires_in` in response from {self.id.value}") from None

    def _optional_str(self, raw_json: Dict[str, Any], key: str) -> Optional[str]:
        value = raw_json.get(key)
        return value if isinstance(value, str) and value else None
