"""Request spacing and rate-limit backoff for the document store."""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

from wgcasting.obs import STORE_RETRY_COUNTER
from wgcasting.services.jsonbin import RateLimitedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


class RateLimiter:
    """Process-wide gate keeping a minimum spacing between store requests."""

    def __init__(
        self,
        min_interval: float = 1.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_request: float | None = None
        self._lock = asyncio.Lock()

    async def throttle(self) -> None:
        """Wait until ``min_interval`` has passed since the last permitted call."""

        async with self._lock:
            if self._last_request is not None:
                wait = self._last_request + self._min_interval - self._clock()
                if wait > 0:
                    logger.debug("rate limiting store request", extra={"wait_seconds": round(wait, 3)})
                    await self._sleep(wait)
            self._last_request = self._clock()


def backoff_delay(attempt: int) -> float:
    """Seconds to wait after the ``attempt``-th rate-limited call (1-based)."""

    return float(2**attempt)


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    sleep: SleepFn = asyncio.sleep,
) -> T:
    """Run ``operation`` and retry rate-limited failures with exponential backoff.

    Only :class:`RateLimitedError` is retried. Any other error propagates on the
    first occurrence and the last rate-limit error propagates once
    ``max_attempts`` calls have been made.
    """

    attempt = 0
    while True:
        try:
            return await operation()
        except RateLimitedError:
            attempt += 1
            if attempt >= max_attempts:
                raise
            delay = backoff_delay(attempt)
            STORE_RETRY_COUNTER.inc()
            logger.warning(
                "store rate limit exceeded, retrying",
                extra={"delay_seconds": delay, "attempt": attempt, "max_attempts": max_attempts},
            )
            await sleep(delay)


__all__ = ["RateLimiter", "SleepFn", "backoff_delay", "run_with_retry"]
