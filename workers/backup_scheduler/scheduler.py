"""Wall-clock scheduler that triggers a backup every few hours."""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Awaitable, Callable
from zoneinfo import ZoneInfo

DEFAULT_INTERVAL_HOURS = 6


def local_now(zone: str | None = None) -> datetime:
    """Current time in ``zone``, or naive system local time when no zone is set.

    Both forms carry the full daylight-saving rules, unlike the fixed offset
    returned by ``datetime.now().astimezone()``.
    """

    if zone:
        return datetime.now(ZoneInfo(zone))
    return datetime.now()


def next_backup_slot(reference: datetime, interval_hours: int = DEFAULT_INTERVAL_HOURS) -> datetime:
    """Return the next slot strictly after ``reference``.

    Slots fall on whole wall-clock hours divisible by ``interval_hours`` in the
    timezone of ``reference`` (00:00, 06:00, 12:00 and 18:00 for the default),
    and the count restarts at midnight. The slot is computed as a naive wall
    time and then given the zone of ``reference``, so a DST change in between
    shifts the offset, not the hour.
    """

    wall = reference.replace(tzinfo=None)
    midnight = wall.replace(hour=0, minute=0, second=0, microsecond=0)
    hour = (wall.hour // interval_hours + 1) * interval_hours
    if hour >= 24:
        slot = midnight + timedelta(days=1)
    else:
        slot = midnight + timedelta(hours=hour)
    return slot.replace(tzinfo=reference.tzinfo)


def seconds_until(target: datetime, now: datetime) -> float:
    """Elapsed seconds between ``now`` and ``target``, never negative.

    Goes through POSIX timestamps so a DST change between the two is counted
    in real seconds; naive values are read as system local time.
    """

    return max(target.timestamp() - now.timestamp(), 0.0)


async def run_backup_scheduler(
    callback: Callable[[], Awaitable[object]],
    *,
    interval_hours: int = DEFAULT_INTERVAL_HOURS,
    now_fn: Callable[[], datetime] | None = None,
    sleep_fn: Callable[[float], Awaitable[None]] = asyncio.sleep,
    iterations: int | None = None,
) -> None:
    """Invoke ``callback`` at every slot returned by :func:`next_backup_slot`."""

    now_provider = now_fn or local_now
    executed = 0

    while iterations is None or executed < iterations:
        now = now_provider()
        target = next_backup_slot(now, interval_hours)
        await sleep_fn(seconds_until(target, now))
        await callback()
        executed += 1


__all__ = [
    "DEFAULT_INTERVAL_HOURS",
    "local_now",
    "next_backup_slot",
    "run_backup_scheduler",
    "seconds_until",
]
