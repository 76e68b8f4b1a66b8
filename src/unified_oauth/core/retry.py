# PUBLIC_INTERFACE
"""
Retry/backoff helpers for vendor token endpoint calls.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

from .logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


# PUBLIC_INTERFACE
async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    attempts: int = 3,
    base_sleep: float = 0.5,
    should_retry: Callable[[Exception], bool] = lambda e: True,
) -> T:
    """Await fn with exponential backoff, retrying only errors accepted by should_retry."""
    for i in range(attempts):
        try:
            return await fn()
        except Exception as e:
            if i == attempts - 1 or not should_retry(e):
                raise
            sleep_for = base_sleep * (2 ** i)
            logger.info("retrying_after_error", extra={"attempt": i + 1, "sleep_s": sleep_for, "error": type(e).__name__})
            await asyncio.sleep(sleep_for)
    raise RuntimeError("retry_with_backoff requires attempts >= 1")
