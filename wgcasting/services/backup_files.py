"""Crash-safe local files used by the backup job: state file and lock marker."""
from __future__ import annotations

import json
import logging
import os
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def atomic_write_text(path: Path, content: str) -> int:
    """Write ``content`` to ``path`` through a temp file and an atomic rename.

    Readers of ``path`` see either the previous file or the complete new one.
    Returns the number of bytes written.
    """

    tmp_path = path.with_name(path.name + ".tmp")
    data = content.encode("utf-8")
    try:
        with tmp_path.open("wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    return len(data)


_STATE_KEYS: dict[str, str] = {
    "last_attempt": "lastAttempt",
    "last_success": "lastSuccess",
    "last_error": "lastError",
    "last_file": "lastFile",
}


@dataclass(slots=True)
class BackupState:
    """Outcome of the most recent backup attempts."""

    last_attempt: str | None = None
    last_success: str | None = None
    last_error: str | None = None
    last_file: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BackupState":
        values = {attr: data.get(key) for attr, key in _STATE_KEYS.items()}
        return cls(**{attr: value if isinstance(value, str) else None for attr, value in values.items()})

    def to_dict(self) -> dict[str, str | None]:
        return {key: getattr(self, attr) for attr, key in _STATE_KEYS.items()}

    def last_success_at(self) -> datetime | None:
        if not isinstance(self.last_success, str) or not self.last_success:
            return None
        try:
            parsed = datetime.fromisoformat(self.last_success.replace("Z", "+00:00"))
        except ValueError:
            logger.warning("ignoring unparsable lastSuccess", extra={"value": self.last_success})
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed


class BackupStateStore:
    """Reads and atomically rewrites ``backup-state.json``."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> BackupState:
        """Return the persisted state; a missing or corrupt file yields an empty state."""

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return BackupState()
        except (OSError, ValueError):
            logger.warning("backup state unreadable, starting fresh", extra={"path": str(self._path)})
            return BackupState()
        if not isinstance(raw, dict):
            return BackupState()
        return BackupState.from_dict(raw)

    def update(self, **changes: str | None) -> BackupState:
        """Merge ``changes`` (``last_attempt=...`` etc.) into the persisted state."""

        state = replace(self.read(), **changes)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        atomic_write_text(self._path, json.dumps(state.to_dict(), indent=2))
        return state


class BackupLock:
    """Advisory cross-process lock based on exclusive creation of a marker file.

    A marker older than ``stale_after_seconds`` is treated as left behind by a
    crashed run and replaced. Two processes that see the same stale marker at
    the same moment can both take over; that race is accepted.
    """

    def __init__(
        self,
        path: Path,
        *,
        stale_after_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._path = path
        self._stale_after = stale_after_seconds
        self._clock = clock
        self._held = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def held(self) -> bool:
        return self._held

    def _create(self, note: str | None = None) -> bool:
        marker: dict[str, Any] = {"pid": os.getpid(), "since": utc_now_iso()}
        if note:
            marker["note"] = note
        try:
            fd = os.open(self._path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(marker, handle, indent=2)
        self._held = True
        return True

    def age_seconds(self) -> float | None:
        try:
            return self._clock() - self._path.stat().st_mtime
        except FileNotFoundError:
            return None

    def is_stale(self) -> bool:
        age = self.age_seconds()
        return age is not None and age > self._stale_after

    def acquire(self) -> bool:
        """Take the lock; ``False`` means another live run holds it."""

        self._path.parent.mkdir(parents=True, exist_ok=True)
        if self._create():
            return True

        age = self.age_seconds()
        if age is None:
            # holder released between our create and stat
            return self._create(note="recovered lock (holder released)")
        if age <= self._stale_after:
            return False

        logger.warning(
            "stale backup lock detected, forcing unlock",
            extra={"age_seconds": round(age), "path": str(self._path)},
        )
        self._path.unlink(missing_ok=True)
        return self._create(note="recovered stale lock")

    def release(self) -> None:
        if not self._held:
            return
        self._path.unlink(missing_ok=True)
        self._held = False

    def clear_if_stale(self) -> bool:
        """Remove a stale marker without taking the lock."""

        if self.is_stale():
            logger.warning("removing stale backup lock at startup", extra={"path": str(self._path)})
            self._path.unlink(missing_ok=True)
            return True
        return False


__all__ = [
    "BackupLock",
    "BackupState",
    "BackupStateStore",
    "atomic_write_text",
    "utc_now_iso",
]
