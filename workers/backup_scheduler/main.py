"""Backup worker: one-shot run or the periodic schedule with a startup catch-up."""

from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Sequence
from functools import partial
from datetime import datetime
from typing import Awaitable, Callable

from pydantic import ValidationError

from wgcasting.core.config import Settings, get_settings
from wgcasting.core.logging import configure_logging
from wgcasting.services.backup import BackupService
from wgcasting.workers.observability import configure_worker, worker_span
from workers.backup_scheduler.scheduler import local_now, run_backup_scheduler

LOGGER = logging.getLogger(__name__)
SERVICE_NAME = "wg-casting-backup"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_MISCONFIGURED = 2


async def run_once(settings: Settings, *, service: BackupService | None = None) -> int:
    """Run a single backup and translate the outcome into an exit code."""

    service = service or BackupService(settings=settings)
    try:
        problems = service.configuration_problems()
        if problems:
            LOGGER.error("backup is misconfigured", extra={"problems": problems})
            return EXIT_MISCONFIGURED
        with worker_span("backup.once", strategy=settings.backup_strategy):
            succeeded = await service.perform_backup()
        return EXIT_OK if succeeded else EXIT_FAILED
    finally:
        await service.aclose()


async def run(
    settings: Settings,
    *,
    service: BackupService | None = None,
    now_fn: Callable[[], datetime] | None = None,
    sleep_fn: Callable[[float], Awaitable[None]] = asyncio.sleep,
    iterations: int | None = None,
) -> None:
    """Start the startup catch-up check and the periodic schedule."""

    service = service or BackupService(settings=settings)
    LOGGER.info(
        "backup scheduler started",
        extra={"interval_hours": settings.backup_interval_hours, "strategy": settings.backup_strategy},
    )
    catch_up = asyncio.create_task(service.catch_up_at_startup(), name="backup-catch-up")
    try:
        await run_backup_scheduler(
            service.perform_backup,
            interval_hours=settings.backup_interval_hours,
            now_fn=now_fn or partial(local_now, settings.backup_timezone),
            sleep_fn=sleep_fn,
            iterations=iterations,
        )
        await catch_up
    finally:
        if not catch_up.done():
            catch_up.cancel()
        await service.aclose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m workers.backup_scheduler",
        description="Back up the WG Casting documents to local disk and object storage.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="run a single backup and exit (0 success, 1 failure, 2 misconfiguration)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the backup worker."""

    args = build_parser().parse_args(argv)
    try:
        settings = get_settings()
    except ValidationError as exc:
        configure_logging()
        LOGGER.error("invalid backup configuration: %s", exc)
        return EXIT_MISCONFIGURED

    configure_worker(SERVICE_NAME, settings)
    if args.once:
        return asyncio.run(run_once(settings))
    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        LOGGER.info("backup scheduler stopped")
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
