"""Per-document mutual exclusion for read-modify-write cycles."""
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from wgcasting.obs import report_queue_depth


class WriteSerializer:
    """FIFO write queue per key.

    ``asyncio.Lock`` wakes waiters in arrival order and does not let new callers
    overtake queued ones, so operations on one key run strictly one after the
    other. Keys never block each other. The queues live in this process only.
    """

    def __init__(self, *, metrics_prefix: str = "document-writes") -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._depth: dict[str, int] = {}
        self._metrics_prefix = metrics_prefix

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def pending(self, key: str) -> int:
        """Number of operations queued or running for ``key``."""
        return self._depth.get(key, 0)

    def _report(self, key: str) -> None:
        report_queue_depth(f"{self._metrics_prefix}:{key}", self._depth.get(key, 0))

    @asynccontextmanager
    async def slot(self, key: str) -> AsyncIterator[None]:
        """Hold the write slot for ``key``; released on success or failure."""

        self._depth[key] = self._depth.get(key, 0) + 1
        self._report(key)
        try:
            async with self._lock_for(key):
                yield
        finally:
            self._depth[key] -= 1
            self._report(key)


__all__ = ["WriteSerializer"]
