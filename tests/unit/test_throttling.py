from __future__ import annotations

import asyncio

import pytest

from wgcasting.services.jsonbin import RateLimitedError, StoreRequestError
from wgcasting.services.throttling import RateLimiter, backoff_delay, run_with_retry


def test_retry_gives_up_after_max_attempts_with_growing_delays() -> None:
    calls = 0
    delays: list[float] = []

    async def operation() -> None:
        nonlocal calls
        calls += 1
        raise RateLimitedError("GET /b/main-bin was rate limited")

    async def fake_sleep(seconds: float) -> None:
        delays.append(seconds)

    with pytest.raises(RateLimitedError):
        asyncio.run(run_with_retry(operation, max_attempts=3, sleep=fake_sleep))

    assert calls == 3
    assert delays == [2.0, 4.0]


def test_retry_returns_result_after_transient_rate_limit() -> None:
    outcomes = [RateLimitedError("429"), "stored"]
    delays: list[float] = []

    async def operation() -> str:
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def fake_sleep(seconds: float) -> None:
        delays.append(seconds)

    assert asyncio.run(run_with_retry(operation, sleep=fake_sleep)) == "stored"
    assert delays == [2.0]


def test_other_errors_fail_fast() -> None:
    calls = 0
    delays: list[float] = []

    async def operation() -> None:
        nonlocal calls
        calls += 1
        raise StoreRequestError("PUT /b/main-bin returned 500", status_code=500)

    async def fake_sleep(seconds: float) -> None:
        delays.append(seconds)

    with pytest.raises(StoreRequestError):
        asyncio.run(run_with_retry(operation, sleep=fake_sleep))

    assert calls == 1
    assert delays == []


def test_backoff_delay_doubles() -> None:
    assert [backoff_delay(attempt) for attempt in (1, 2, 3)] == [2.0, 4.0, 8.0]


def _fake_clock(start: float = 100.0):
    now = [start]
    slept: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        slept.append(seconds)
        now[0] += seconds

    return now, slept, fake_sleep


def test_rate_limiter_spaces_consecutive_requests() -> None:
    now, slept, fake_sleep = _fake_clock()
    limiter = RateLimiter(1.0, clock=lambda: now[0], sleep=fake_sleep)

    async def run() -> None:
        await limiter.throttle()
        now[0] += 0.25
        await limiter.throttle()
        await limiter.throttle()

    asyncio.run(run())

    assert slept == pytest.approx([0.75, 1.0])


def test_rate_limiter_does_not_wait_after_idle_period() -> None:
    now, slept, fake_sleep = _fake_clock()
    limiter = RateLimiter(1.0, clock=lambda: now[0], sleep=fake_sleep)

    async def run() -> None:
        await limiter.throttle()
        now[0] += 5.0
        await limiter.throttle()

    asyncio.run(run())

    assert slept == []


def test_concurrent_callers_are_spaced_apart() -> None:
    now, _slept, fake_sleep = _fake_clock()
    limiter = RateLimiter(1.0, clock=lambda: now[0], sleep=fake_sleep)
    permitted_at: list[float] = []

    async def call() -> None:
        await limiter.throttle()
        permitted_at.append(now[0])

    async def run() -> None:
        await asyncio.gather(call(), call(), call())

    asyncio.run(run())

    assert permitted_at == pytest.approx([100.0, 101.0, 102.0])
