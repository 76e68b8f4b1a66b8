# PUBLIC_INTERFACE
"""
HTTP mapping for domain errors and unified error responses.
"""
from __future__ import annotations

from typing import Dict

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ..oauth.errors import (
    ConnectionLifecycleError,
    ConnectionNotFoundError,
    ConnectionStateError,
    ProviderError,
    ProviderErrorCode,
)
from .logging import get_logger
from .response import error_payload

logger = get_logger(__name__)

PROVIDER_ERROR_STATUS: Dict[ProviderErrorCode, int] = {
    ProviderErrorCode.TRANSPORT_ERROR: status.HTTP_502_BAD_GATEWAY,
    ProviderErrorCode.INVALID_RESPONSE: status.HTTP_502_BAD_GATEWAY,
    ProviderErrorCode.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ProviderErrorCode.TOKEN_REVOKED: status.HTTP_401_UNAUTHORIZED,
    ProviderErrorCode.ACTION_NOT_SUPPORTED: status.HTTP_400_BAD_REQUEST,
    ProviderErrorCode.MALFORMED_PAYLOAD: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _lifecycle_status(exc: ConnectionLifecycleError) -> int:
    if isinstance(exc, ConnectionNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, ConnectionStateError):
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


async def _provider_error_handler(request: Request, exc: ProviderError) -> JSONResponse:
    upstream = getattr(exc, "status_code", None)
    return JSONResponse(
        status_code=PROVIDER_ERROR_STATUS[exc.code],
        content=error_payload(code=exc.code.value, message=exc.message, http_status=upstream),
    )


async def _lifecycle_error_handler(request: Request, exc: ConnectionLifecycleError) -> JSONResponse:
    return JSONResponse(status_code=_lifecycle_status(exc), content=error_payload(code=exc.code, message=exc.message))


# PUBLIC_INTERFACE
def install_error_handlers(app: FastAPI) -> None:
    """Render provider and lifecycle errors with the standard error envelope."""
    app.add_exception_handler(ProviderError, _provider_error_handler)
    app.add_exception_handler(ConnectionLifecycleError, _lifecycle_error_handler)
