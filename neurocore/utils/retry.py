"""Bounded retry with backoff for store writes.

Every write path that affects XP, skills, combo history or snapshots goes
through :func:`with_retry` so attempts, backoff and failure reporting are
the same everywhere.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import Awaitable, Callable
from typing import TypeVar

from config import STORE_RETRY_ATTEMPTS, STORE_RETRY_BACKOFF_SECONDS
from neurocore.errors import StoreUnavailableError

__all__ = ["with_retry", "linear_backoff", "TRANSIENT_ERRORS"]

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (sqlite3.Error, OSError)


def linear_backoff(step_seconds: float = STORE_RETRY_BACKOFF_SECONDS) -> Callable[[int], float]:
    """Delay after the n-th failed attempt is ``step_seconds * n``."""
    return lambda attempt: step_seconds * attempt


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    name: str,
    attempts: int = STORE_RETRY_ATTEMPTS,
    backoff: Callable[[int], float] | None = None,
    retry_on: tuple[type[BaseException], ...] = TRANSIENT_ERRORS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Await ``operation()`` up to *attempts* times.

    Exceptions outside *retry_on* propagate immediately.  After the last
    failed attempt a :class:`StoreUnavailableError` is raised from the
    final exception.
    """
    attempts = max(1, attempts)
    delay_for = backoff or linear_backoff()
    last_exc: BaseException | None = None

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except retry_on as exc:
            last_exc = exc
            logger.warning("%s attempt %d/%d failed: %s", name, attempt, attempts, exc)
            if attempt < attempts:
                await sleep(delay_for(attempt))

    logger.error("%s failed after %d attempts", name, attempts)
    raise StoreUnavailableError(name, attempts, last_exc) from last_exc
