from __future__ import annotations

import logging
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Dict, Iterator, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

# Context variables to carry across the request / lifecycle call
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")
route_ctx: ContextVar[str] = ContextVar("route", default="-")
provider_ctx: ContextVar[str] = ContextVar("provider", default="-")
connection_id_ctx: ContextVar[str] = ContextVar("connection_id", default="-")

# In-memory basic counters (simple, process-local) for quick metrics
_METRICS: Dict[str, float] = {
    "requests_total": 0.0,
    "requests_errors_total": 0.0,
    "finalize_total": 0.0,
    "refresh_total": 0.0,
    "provider_errors_total": 0.0,
    "token_exchange_latency_ms_sum": 0.0,
}


def metrics_snapshot() -> Dict[str, float]:
    """Return a shallow copy of current metrics."""
    return dict(_METRICS)


# PUBLIC_INTERFACE
def increment_metric(name: str, inc: float = 1.0) -> None:
    """Increment a named metric counter by inc."""
    _METRICS[name] = _METRICS.get(name, 0.0) + inc


# PUBLIC_INTERFACE
def observe_latency(name: str, ms: float) -> None:
    """Accumulate latency in milliseconds for a given metric name."""
    _METRICS[name] = _METRICS.get(name, 0.0) + ms


def get_current_request_id() -> str:
    return request_id_ctx.get()


# PUBLIC_INTERFACE
@contextmanager
def lifecycle_context(provider: str, connection_id: Optional[str] = None) -> Iterator[None]:
    """Bind provider and connection id to every log record emitted inside the block."""
    p_token = provider_ctx.set(provider)
    c_token = connection_id_ctx.set(connection_id or "-")
    try:
        yield
    finally:
        connection_id_ctx.reset(c_token)
        provider_ctx.reset(p_token)


def mask_secret_value(value: Optional[str], keep: int = 4) -> Optional[str]:
    """Mask a secret for safe logging. Keep last N chars."""
    if value is None:
        return None
    v = str(value)
    if len(v) <= keep * 2:
        return "*" * len(v)
    return "*" * (len(v) - keep) + v[-keep:]


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to attach a correlation/request ID and emit structured logs + metrics."""

    def __init__(self, app, logger: Optional[logging.Logger] = None):
        super().__init__(app)
        self.logger = logger or logging.getLogger(__name__)

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        rid_token = request_id_ctx.set(rid)
        route_token = route_ctx.set(request.url.path)

        increment_metric("requests_total", 1.0)
        self.logger.info("request_start", extra={"method": request.method, "path": request.url.path})
        try:
            response: Response = await call_next(request)
            if response.status_code >= 400:
                increment_metric("requests_errors_total", 1.0)
            response.headers["X-Request-ID"] = rid
            return response
        except Exception as ex:
            increment_metric("requests_errors_total", 1.0)
            # Type only: exception text may embed vendor payloads
            self.logger.exception("request_error", extra={"error": type(ex).__name__})
            raise
        finally:
            dur_ms = (time.perf_counter() - start) * 1000.0
            self.logger.info("request_end", extra={"duration_ms": round(dur_ms, 2)})
            route_ctx.reset(route_token)
            request_id_ctx.reset(rid_token)


# PUBLIC_INTERFACE
def get_structured_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a structured logger that adds correlation attributes through logging Filters."""
    logger = logging.getLogger(name or __name__)
    if not any(isinstance(f, _ContextFilter) for f in logger.filters):
        logger.addFilter(_ContextFilter())
    return logger


class _ContextFilter(logging.Filter):
    """Inject lifecycle context (request_id, route, provider, connection_id) into records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get()
        record.route = route_ctx.get()
        record.provider = provider_ctx.get()
        record.connection_id = connection_id_ctx.get()
        return True
