from __future__ import annotations

import base64
import hashlib
from datetime import datetime, timedelta, timezone
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from .logging import get_logger

logger = get_logger(__name__)


class SealingError(RuntimeError):
    """Raised when sealed token material cannot be decrypted."""


# PUBLIC_INTERFACE
def get_fernet(encryption_key: str) -> Fernet:
    """Return a Fernet instance for the configured ENCRYPTION_KEY.

    The key may be any string; it is stretched with SHA-256 and base64-url
    encoded into the 32-byte key Fernet expects.
    """
    digest = hashlib.sha256(encryption_key.encode("utf-8")).digest()
    return Fernet(base64.urlsafe_b64encode(digest))


# PUBLIC_INTERFACE
def seal(fernet: Fernet, plaintext: bytes) -> bytes:
    """Encrypt bytes with Fernet."""
    return fernet.encrypt(plaintext)


# PUBLIC_INTERFACE
def unseal(fernet: Fernet, token: bytes) -> bytes:
    """Decrypt bytes sealed by seal(). Raises SealingError on tampered or foreign data."""
    try:
        return fernet.decrypt(token)
    except InvalidToken as e:
        # Do not leak the token content in logs
        logger.warning("Failed to unseal stored token material.")
        raise SealingError("Stored token material could not be decrypted") from e


# PUBLIC_INTERFACE
def basic_auth_header(client_id: str, client_secret: str) -> str:
    """Build a Basic authorization header value from a client id/secret pair."""
    raw = f"{client_id}:{client_secret}".encode("utf-8")
    encoded = base64.b64encode(raw).decode("ascii")
    return f"Basic {encoded}"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
def compute_expiry(expires_in_seconds: int, skew_seconds: int = 30) -> datetime:
    """Return absolute expiry time with small safety skew."""
    return _now_utc() + timedelta(seconds=max(0, expires_in_seconds - skew_seconds))


# PUBLIC_INTERFACE
def expires_within(expires_at: Optional[datetime], seconds: int) -> bool:
    """True if expires_at is set and falls within the next `seconds` seconds.

    A missing expiry means the token never expires.
    """
    if expires_at is None:
        return False
    return expires_at <= _now_utc() + timedelta(seconds=seconds)
