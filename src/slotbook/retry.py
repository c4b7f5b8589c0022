"""Retry with exponential backoff for store reads and writes."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_SQLITE_MESSAGES = ("database is locked", "database table is locked", "database is busy")


async def retry_async(
    fn: Callable[..., T],
    *args,
    max_retries: int = 3,
    base_delay: float = 0.05,
    max_delay: float = 2.0,
    label: str = "store_call",
    **kwargs,
) -> T:
    """Call fn with retries and exponential backoff.

    Retries on transient errors (locked database, connection resets, timeouts).
    Anything else (schema errors, bad data) is raised immediately.
    """
    last_exc = None
    for attempt in range(max_retries + 1):
        try:
            return fn(*args, **kwargs)
        except Exception as exc:
            last_exc = exc
            if not _is_retryable(exc) or attempt == max_retries:
                raise
            delay = min(base_delay * (2 ** attempt), max_delay)
            logger.warning(
                "%s failed (attempt %d/%d): %s. Retrying in %.2fs",
                label, attempt + 1, max_retries + 1, exc, delay,
            )
            await asyncio.sleep(delay)

    raise last_exc  # type: ignore[misc]


def _is_retryable(exc: Exception) -> bool:
    """Check if an exception is transient and worth retrying."""
    if isinstance(exc, sqlite3.OperationalError):
        message = str(exc).lower()
        return any(m in message for m in TRANSIENT_SQLITE_MESSAGES)

    # Generic network / filesystem errors (e.g. a database on a network share)
    if isinstance(exc, (ConnectionError, TimeoutError, OSError)):
        return True

    return False
