"""Short-lived read-through cache, one instance per document."""
from __future__ import annotations

import time
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class DocumentCache(Generic[T]):
    """Holds the last fetched or written document for ``freshness_seconds``."""

    def __init__(
        self,
        freshness_seconds: float = 10.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._freshness = freshness_seconds
        self._clock = clock
        self._data: T | None = None
        self._last_fetched = 0.0

    def is_valid(self) -> bool:
        return self._data is not None and (self._clock() - self._last_fetched) < self._freshness

    def get(self) -> T | None:
        return self._data if self.is_valid() else None

    def set(self, value: T) -> None:
        self._data = value
        self._last_fetched = self._clock()

    def invalidate(self) -> None:
        self._data = None


__all__ = ["DocumentCache"]
