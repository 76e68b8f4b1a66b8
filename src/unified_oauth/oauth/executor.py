from __future__ import annotations

import json
import time
from enum import Enum
from typing import Any, Optional

import httpx

from ..core.logging import get_logger
from ..core.observability import observe_latency
from ..core.retry import retry_with_backoff
from ..core.settings import HTTPSettings
from .connection import ConnectionProvider

logger = get_logger(__name__)

# Upper bound on vendor body text kept on errors.
_MAX_ERROR_BODY = 512

# Statuses the vendor returns before processing the request.
_RETRYABLE_STATUSES = frozenset({429})


class TransportErrorKind(str, Enum):
    REQUEST_FAILED = "request_failed"
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    INVALID_JSON = "invalid_json"


class TransportError(Exception):
    """Typed failure from RequestExecutor. Never wraps the raw httpx exception as its payload."""

    def __init__(
        self,
        provider: ConnectionProvider,
        kind: TransportErrorKind,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.provider = provider
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.body = body
        self.retryable = retryable

    def json_body(self) -> Optional[Any]:
        """Best-effort parse of the error body (OAuth errors are usually JSON)."""
        if not self.body:
            return None
        try:
            return json.loads(self.body)
        except ValueError:
            return None


class RequestExecutor:
    """Sends vendor token-endpoint requests with the configured timeout and retry policy.

    Only failures where the vendor cannot have consumed the request (connection
    never established, HTTP 429) are retried; authorization codes are single-use.
    """

    def __init__(self, settings: HTTPSettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    # PUBLIC_INTERFACE
    async def execute(self, provider: ConnectionProvider, request: httpx.Request) -> Any:
        """Send request and return its parsed JSON body, or raise TransportError."""
        return await retry_with_backoff(
            lambda: self._send_once(provider, request),
            attempts=self.settings.RETRY_ATTEMPTS,
            base_sleep=self.settings.RETRY_BASE_SLEEP,
            should_retry=lambda e: isinstance(e, TransportError) and e.retryable,
        )

    async def _send_once(self, provider: ConnectionProvider, request: httpx.Request) -> Any:
        t0 = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=self.settings.TIMEOUT_SECONDS, transport=self._transport) as client:
                resp = await client.send(request)
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            raise TransportError(provider, TransportErrorKind.REQUEST_FAILED, f"Could not reach {request.url.host}: {type(e).__name__}", retryable=True) from None
        except httpx.TimeoutException as e:
            raise TransportError(provider, TransportErrorKind.TIMEOUT, f"Request to {request.url.host} timed out: {type(e).__name__}") from None
        except httpx.HTTPError as e:
            raise TransportError(provider, TransportErrorKind.REQUEST_FAILED, f"Request to {request.url.host} failed: {type(e).__name__}") from None
        finally:
            observe_latency("token_exchange_latency_ms_sum", (time.perf_counter() - t0) * 1000.0)

        if resp.status_code >= 400:
            logger.warning("vendor_request_failed", extra={"status_code": resp.status_code, "url": str(request.url)})
            raise TransportError(
                provider,
                TransportErrorKind.HTTP_STATUS,
                f"{provider.value} responded with HTTP {resp.status_code}",
                status_code=resp.status_code,
                body=resp.text[:_MAX_ERROR_BODY],
                retryable=resp.status_code in _RETRYABLE_STATUSES,
            )
        try:
            return resp.json()
        except ValueError:
            raise TransportError(
                provider,
                TransportErrorKind.INVALID_JSON,
                f"{provider.value} returned a non-JSON body",
                status_code=resp.status_code,
            ) from None
