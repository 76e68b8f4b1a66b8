# PUBLIC_INTERFACE
"""
Closed error taxonomy for provider operations and connection lifecycle.

Provider operations raise only ProviderError subclasses across the interface
boundary; callers branch on the class or on `code`.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class ProviderErrorCode(str, Enum):
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    TOKEN_REVOKED = "TOKEN_REVOKED"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    ACTION_NOT_SUPPORTED = "ACTION_NOT_SUPPORTED"
    MALFORMED_PAYLOAD = "MALFORMED_PAYLOAD"


class ProviderError(Exception):
    """Base class for every failure surfaced by a Provider."""

    code: ProviderErrorCode

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value}, message={self.message!r})"


class ProviderTransportError(ProviderError):
    """Network/HTTP failure while talking to the vendor."""

    code = ProviderErrorCode.TRANSPORT_ERROR

    def __init__(self, message: str, status_code: Optional[int] = None, retryable: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class InvalidCredentialsError(ProviderTransportError):
    """The vendor rejected our client credentials or the presented token."""

    code = ProviderErrorCode.INVALID_CREDENTIALS


class TokenRevokedError(ProviderTransportError):
    """The grant (code or refresh token) is no longer valid at the vendor."""

    code = ProviderErrorCode.TOKEN_REVOKED


class InvalidResponseError(ProviderError):
    """The vendor answered 2xx but the payload lacks required fields."""

    code = ProviderErrorCode.INVALID_RESPONSE


class ActionNotSupportedError(ProviderError):
    """The operation is semantically invalid for this vendor."""

    code = ProviderErrorCode.ACTION_NOT_SUPPORTED


class MalformedPayloadError(ProviderError):
    """Scrubbing was attempted on a raw payload that is not a JSON object."""

    code = ProviderErrorCode.MALFORMED_PAYLOAD


# Errors after which the stored credential can never work again.
PERMANENT_REFRESH_ERRORS = (TokenRevokedError, InvalidCredentialsError)


class ConnectionLifecycleError(Exception):
    """Base class for connection state errors raised by the lifecycle service."""

    code: str = "CONNECTION_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConnectionNotFoundError(ConnectionLifecycleError):
    code = "CONNECTION_NOT_FOUND"

    def __init__(self, connection_id: str):
        super().__init__(f"Connection '{connection_id}' not found")
        self.connection_id = connection_id


class ConnectionStateError(ConnectionLifecycleError):
    """The requested transition is not valid from the connection's current status."""

    code = "CONNECTION_STATE_INVALID"
