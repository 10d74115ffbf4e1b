from __future__ import annotations

from wgcasting.services.cache import DocumentCache


def test_cache_serves_value_within_freshness_window() -> None:
    now = [0.0]
    cache: DocumentCache[dict[str, int]] = DocumentCache(10.0, clock=lambda: now[0])
    cache.set({"version": 1})

    now[0] = 9.9
    assert cache.is_valid()
    assert cache.get() == {"version": 1}

    now[0] = 10.0
    assert not cache.is_valid()
    assert cache.get() is None


def test_set_restarts_freshness_window() -> None:
    now = [0.0]
    cache: DocumentCache[str] = DocumentCache(10.0, clock=lambda: now[0])
    cache.set("first")
    now[0] = 8.0
    cache.set("second")
    now[0] = 15.0

    assert cache.get() == "second"


def test_invalidate_clears_cached_value() -> None:
    cache: DocumentCache[str] = DocumentCache()
    assert cache.get() is None

    cache.set("document")
    cache.invalidate()

    assert cache.get() is None
