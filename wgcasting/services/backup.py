"""Snapshot the stored documents to local disk and cloud object storage."""
from __future__ import annotations

import asyncio
import enum
import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Protocol

import boto3

from wgcasting.core.config import Settings, get_settings
from wgcasting.obs import BACKUP_DURATION_SECONDS, BACKUP_RUN_COUNTER, traced_span
from wgcasting.services.backup_files import (
    BackupLock,
    BackupState,
    BackupStateStore,
    atomic_write_text,
    utc_now_iso,
)
from wgcasting.services.jsonbin import JsonBinClient, StoreError

logger = logging.getLogger(__name__)

DRY_RUN_NOTE = "DRY_RUN enabled - no network calls"


class BackupError(RuntimeError):
    """Base class for backup failures."""


class BackupConfigurationError(BackupError):
    """Raised when a live backup is requested without store credentials."""


@dataclass(slots=True, frozen=True)
class LocalBackupFile:
    path: Path
    filename: str
    size: int


@dataclass(slots=True, frozen=True)
class UploadResult:
    bucket: str
    key: str

    @property
    def location(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


class BackupUploader(Protocol):
    """Copies a finished backup file to remote storage."""

    def upload(self, path: Path, filename: str) -> UploadResult:
        ...


class S3BackupUploader:
    """Uploads backup files to an S3-compatible bucket under a folder prefix."""

    def __init__(
        self,
        *,
        bucket: str,
        folder: str,
        client_factory: Callable[[], Any],
    ) -> None:
        self._bucket = bucket
        self._folder = folder.strip("/")
        self._client_factory = client_factory
        self._client: Any | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3BackupUploader | None":
        if not settings.backup_s3_bucket:
            return None

        def factory() -> Any:
            return boto3.client(
                "s3",
                region_name=settings.aws_region,
                endpoint_url=settings.s3_endpoint_url,
                aws_access_key_id=settings.aws_access_key_id,
                aws_secret_access_key=settings.aws_secret_access_key,
            )

        return cls(bucket=settings.backup_s3_bucket, folder=settings.backup_s3_folder, client_factory=factory)

    def _get_client(self) -> Any:
        if self._client is None:
            logger.info("initializing object storage client", extra={"bucket": self._bucket})
            self._client = self._client_factory()
        return self._client

    def upload(self, path: Path, filename: str) -> UploadResult:
        key = f"{self._folder}/{filename}" if self._folder else filename
        self._get_client().upload_file(
            str(path),
            self._bucket,
            key,
            ExtraArgs={"ContentType": "application/json"},
        )
        return UploadResult(bucket=self._bucket, key=key)


def backup_filename(moment: datetime) -> str:
    """``backup-<ISO8601>.json`` with ``:`` and ``.`` replaced so it is a safe file name."""

    stamp = moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return f"backup-{stamp.replace(':', '-').replace('.', '-')}.json"


class StartupAction(str, enum.Enum):
    INITIAL = "initial"
    CATCH_UP = "catch_up"
    GRACE = "grace"
    SKIP = "skip"


@dataclass(slots=True, frozen=True)
class StartupDecision:
    action: StartupAction
    elapsed: timedelta | None = None
    missed_intervals: int = 0

    @property
    def should_run(self) -> bool:
        return self.action is not StartupAction.SKIP


def plan_startup_backup(
    state: BackupState,
    *,
    now: datetime,
    grace: timedelta,
    interval: timedelta,
) -> StartupDecision:
    """Decide whether the process start should trigger a backup right away."""

    last_success = state.last_success_at()
    if last_success is None:
        return StartupDecision(StartupAction.INITIAL)

    elapsed = now - last_success
    if elapsed >= max(grace, interval):
        missed = max(0, (elapsed - grace) // interval)
        return StartupDecision(StartupAction.CATCH_UP, elapsed, missed)
    if elapsed >= grace:
        return StartupDecision(StartupAction.GRACE, elapsed)
    return StartupDecision(StartupAction.SKIP, elapsed)


class BackupService:
    """Runs one backup at a time across processes, guarded by a lock file."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        client: JsonBinClient | None = None,
        uploader: BackupUploader | None = None,
        now_fn: Callable[[], datetime] | None = None,
        lock_clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client or JsonBinClient(
            self._settings.jsonbin_base_url,
            self._settings.jsonbin_api_key,
            timeout=self._settings.jsonbin_timeout_seconds,
        )
        self._owns_client = client is None
        self._uploader = uploader if uploader is not None else S3BackupUploader.from_settings(self._settings)
        self._now = now_fn or (lambda: datetime.now(timezone.utc))
        self._backup_dir = Path(self._settings.backup_dir)
        self._state = BackupStateStore(self._settings.backup_state_file)
        self._lock = BackupLock(
            self._settings.backup_lock_file,
            stale_after_seconds=self._settings.backup_lock_stale_minutes * 60,
            clock=lock_clock,
        )
        logger.info(
            "backup configuration",
            extra={
                "dry_run": self._settings.backup_dry_run,
                "strategy": self._settings.backup_strategy,
                "main_bin_set": bool(self._settings.jsonbin_bin_id),
                "votes_bin_set": bool(self._settings.jsonbin_votes_bin_id),
                "cloud_target_set": self._uploader is not None,
                "backup_dir": str(self._backup_dir),
            },
        )

    @property
    def state_store(self) -> BackupStateStore:
        return self._state

    @property
    def lock(self) -> BackupLock:
        return self._lock

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def configuration_problems(self) -> list[str]:
        """Missing settings that make a live backup impossible."""

        if self._settings.backup_dry_run:
            return []
        problems = []
        if not self._settings.jsonbin_api_key:
            problems.append("Missing JSONBIN_API_KEY")
        if not self._settings.jsonbin_bin_id:
            problems.append("Missing JSONBIN_BIN_ID")
        return problems

    async def _fetch_bin(self, bin_id: str, label: str) -> dict[str, Any]:
        started = time.perf_counter()
        envelope = await self._client.fetch_envelope(bin_id)
        logger.info(
            "fetched bin",
            extra={
                "document": label,
                "bytes": len(json.dumps(envelope)),
                "duration_ms": round((time.perf_counter() - started) * 1000),
            },
        )
        return envelope

    async def build_payload(self) -> dict[str, Any]:
        """Collect both documents; a failing votes document is recorded as ``None``."""

        settings = self._settings
        if settings.backup_dry_run:
            logger.info("dry run enabled, skipping remote fetch")
            placeholder = {"mock": True, "note": DRY_RUN_NOTE}
            return {
                "timestamp": utc_now_iso(),
                "mainBinId": settings.jsonbin_bin_id or "(unset)",
                "votesBinId": settings.jsonbin_votes_bin_id,
                "main": placeholder,
                "votes": dict(placeholder),
            }

        problems = self.configuration_problems()
        if problems:
            raise BackupConfigurationError("; ".join(problems))

        main = await self._fetch_bin(settings.jsonbin_bin_id or "", "main")
        votes = None
        if settings.jsonbin_votes_bin_id:
            try:
                votes = await self._fetch_bin(settings.jsonbin_votes_bin_id, "votes")
            except StoreError as exc:
                logger.warning("failed to fetch votes bin, continuing without it", extra={"error": str(exc)})
        else:
            logger.info("votes bin id not set, skipping votes fetch")

        return {
            "timestamp": utc_now_iso(),
            "mainBinId": settings.jsonbin_bin_id,
            "votesBinId": settings.jsonbin_votes_bin_id,
            "main": main,
            "votes": votes,
        }

    def write_local_backup(self, payload: dict[str, Any]) -> LocalBackupFile:
        filename = backup_filename(self._now())
        path = self._backup_dir / filename
        size = atomic_write_text(path, json.dumps(payload, indent=2))
        logger.info("wrote backup file", extra={"path": str(path), "bytes": size})
        return LocalBackupFile(path=path, filename=filename, size=size)

    async def upload(self, local: LocalBackupFile) -> UploadResult | None:
        if self._settings.backup_dry_run:
            logger.warning("dry run enabled, skipping cloud upload")
            return None
        if self._uploader is None:
            logger.warning("cloud upload skipped, BACKUP_S3_BUCKET is not configured")
            return None
        started = time.perf_counter()
        result = await asyncio.to_thread(self._uploader.upload, local.path, local.filename)
        logger.info(
            "cloud upload complete",
            extra={
                "location": result.location,
                "bytes": local.size,
                "duration_ms": round((time.perf_counter() - started) * 1000),
            },
        )
        return result

    async def perform_backup(self) -> bool:
        """Run one backup. Never raises; the outcome is logged and persisted."""

        settings = self._settings
        started = time.perf_counter()
        acquired = False
        logger.info("starting backup")
        with traced_span("backup.run", strategy=settings.backup_strategy, dry_run=settings.backup_dry_run):
            try:
                self._backup_dir.mkdir(parents=True, exist_ok=True)

                acquired = self._lock.acquire()
                if not acquired:
                    logger.warning("another backup is in progress (lock present), skipping this run")
                    BACKUP_RUN_COUNTER.labels(outcome="skipped").inc()
                    return False

                self._state.update(last_attempt=utc_now_iso(), last_error=None)
                payload = await self.build_payload()

                local: LocalBackupFile | None = None
                uploaded: UploadResult | None = None
                if settings.backup_to_local or settings.backup_to_drive:
                    local = self.write_local_backup(payload)

                if settings.backup_to_drive and local is not None:
                    uploaded = await self.upload(local)
                    if uploaded is not None and not settings.backup_to_local:
                        try:
                            local.path.unlink()
                            logger.info("removed local file after upload", extra={"file": local.filename})
                        except OSError as exc:
                            logger.warning("failed to remove local file", extra={"error": str(exc)})

                if uploaded is not None:
                    logger.info("uploaded backup", extra={"location": uploaded.location})
                elif local is not None and settings.backup_to_local:
                    logger.info("created local backup", extra={"file": local.filename, "bytes": local.size})
                else:
                    logger.warning("no backup destination executed, check BACKUP_STRATEGY")

                self._state.update(
                    last_success=utc_now_iso(),
                    last_file=local.filename if local is not None else None,
                    last_error=None,
                )
                logger.info(
                    "backup finished successfully",
                    extra={"duration_ms": round((time.perf_counter() - started) * 1000)},
                )
                BACKUP_RUN_COUNTER.labels(outcome="success").inc()
                return True
            except Exception as exc:
                logger.exception(
                    "backup failed",
                    extra={"duration_ms": round((time.perf_counter() - started) * 1000)},
                )
                try:
                    self._state.update(last_error=str(exc) or exc.__class__.__name__)
                except OSError:
                    logger.exception("failed to record backup error in state file")
                BACKUP_RUN_COUNTER.labels(outcome="failure").inc()
                return False
            finally:
                if acquired:
                    self._lock.release()
                BACKUP_DURATION_SECONDS.observe(time.perf_counter() - started)

    def plan_startup(self) -> StartupDecision:
        settings = self._settings
        return plan_startup_backup(
            self._state.read(),
            now=self._now(),
            grace=timedelta(minutes=settings.backup_catchup_grace_minutes),
            interval=timedelta(hours=settings.backup_interval_hours),
        )

    async def catch_up_at_startup(self) -> bool | None:
        """Run a backup now if the last success is missing or too old.

        Returns the backup outcome, or ``None`` when a recent backup exists.
        """

        try:
            self._backup_dir.mkdir(parents=True, exist_ok=True)
            self._lock.clear_if_stale()
            decision = self.plan_startup()
        except Exception:
            logger.warning("startup catch-up check failed, running a backup anyway", exc_info=True)
            return await self.perform_backup()

        if decision.action is StartupAction.INITIAL:
            logger.info("no previous successful backup recorded, running initial backup now")
        elif decision.action is StartupAction.CATCH_UP:
            logger.warning(
                "missed backup window(s) since last success, running catch-up now",
                extra={"missed_intervals": decision.missed_intervals},
            )
        elif decision.action is StartupAction.GRACE:
            logger.info("last backup is older than the grace window, running startup backup")
        else:
            logger.info("recent backup exists, skipping immediate startup run")
            return None
        return await self.perform_backup()


__all__ = [
    "BackupConfigurationError",
    "BackupError",
    "BackupService",
    "BackupUploader",
    "LocalBackupFile",
    "S3BackupUploader",
    "StartupAction",
    "StartupDecision",
    "UploadResult",
    "backup_filename",
    "plan_startup_backup",
]
