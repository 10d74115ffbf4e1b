from __future__ import annotations

import json
import os

import pytest

from wgcasting.services.backup_files import (
    BackupLock,
    BackupState,
    BackupStateStore,
    atomic_write_text,
)


def test_atomic_write_replaces_file_without_leftovers(tmp_path) -> None:
    target = tmp_path / "backup-state.json"
    target.write_text("old", encoding="utf-8")

    written = atomic_write_text(target, '{"lastSuccess": null}')

    assert target.read_text(encoding="utf-8") == '{"lastSuccess": null}'
    assert written == len('{"lastSuccess": null}')
    assert not (tmp_path / "backup-state.json.tmp").exists()


def test_atomic_write_keeps_previous_file_when_rename_fails(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    target = tmp_path / "backup-state.json"
    target.write_text("previous", encoding="utf-8")

    def failing_replace(*_args: object) -> None:
        raise OSError("disk full")

    monkeypatch.setattr("wgcasting.services.backup_files.os.replace", failing_replace)

    with pytest.raises(OSError):
        atomic_write_text(target, "partial")

    assert target.read_text(encoding="utf-8") == "previous"
    assert not (tmp_path / "backup-state.json.tmp").exists()


def test_state_store_merges_updates(tmp_path) -> None:
    store = BackupStateStore(tmp_path / "backup-state.json")

    store.update(last_attempt="2024-06-01T12:00:00.000Z", last_error="boom")
    state = store.update(last_success="2024-06-01T12:00:05.000Z", last_error=None)

    assert state == BackupState(
        last_attempt="2024-06-01T12:00:00.000Z",
        last_success="2024-06-01T12:00:05.000Z",
    )
    assert json.loads(store.path.read_text(encoding="utf-8")) == {
        "lastAttempt": "2024-06-01T12:00:00.000Z",
        "lastSuccess": "2024-06-01T12:00:05.000Z",
        "lastError": None,
        "lastFile": None,
    }


def test_state_store_tolerates_missing_and_corrupt_files(tmp_path) -> None:
    store = BackupStateStore(tmp_path / "backup-state.json")
    assert store.read() == BackupState()

    store.path.write_text("{not json", encoding="utf-8")
    assert store.read() == BackupState()


def test_state_store_ignores_non_string_values(tmp_path) -> None:
    store = BackupStateStore(tmp_path / "backup-state.json")
    store.path.write_text(json.dumps({"lastSuccess": 1717236000000, "lastFile": "backup-x.json"}), encoding="utf-8")

    state = store.read()

    assert state.last_success is None
    assert state.last_file == "backup-x.json"
    assert state.last_success_at() is None


def test_last_success_is_parsed_as_utc(tmp_path) -> None:
    state = BackupState(last_success="2024-06-01T12:00:00.000Z")

    parsed = state.last_success_at()

    assert parsed is not None
    assert parsed.utcoffset().total_seconds() == 0
    assert parsed.hour == 12
    assert BackupState(last_success="yesterday").last_success_at() is None


def test_lock_acquire_and_release(tmp_path) -> None:
    lock = BackupLock(tmp_path / "backup.lock", stale_after_seconds=3600)

    assert lock.acquire() is True
    marker = json.loads(lock.path.read_text(encoding="utf-8"))
    assert marker["pid"] == os.getpid()
    assert "since" in marker

    lock.release()
    assert not lock.path.exists()
    assert lock.held is False


def test_young_lock_is_left_untouched(tmp_path) -> None:
    path = tmp_path / "backup.lock"
    holder = BackupLock(path, stale_after_seconds=3600)
    assert holder.acquire() is True
    original = path.read_text(encoding="utf-8")

    contender = BackupLock(path, stale_after_seconds=3600)
    assert contender.acquire() is False
    contender.release()

    assert path.read_text(encoding="utf-8") == original


def test_stale_lock_is_recovered(tmp_path) -> None:
    path = tmp_path / "backup.lock"
    path.write_text(json.dumps({"pid": 1, "since": "2024-06-01T00:00:00.000Z"}), encoding="utf-8")
    created_at = path.stat().st_mtime

    lock = BackupLock(path, stale_after_seconds=3600, clock=lambda: created_at + 2 * 3600)

    assert lock.is_stale() is True
    assert lock.acquire() is True
    marker = json.loads(path.read_text(encoding="utf-8"))
    assert marker["pid"] == os.getpid()
    assert marker["note"] == "recovered stale lock"

    lock.release()
    assert not path.exists()


def test_clear_if_stale_only_removes_old_markers(tmp_path) -> None:
    path = tmp_path / "backup.lock"
    path.write_text("{}", encoding="utf-8")
    created_at = path.stat().st_mtime

    assert BackupLock(path, stale_after_seconds=3600, clock=lambda: created_at + 60).clear_if_stale() is False
    assert path.exists()

    assert BackupLock(path, stale_after_seconds=3600, clock=lambda: created_at + 7200).clear_if_stale() is True
    assert not path.exists()
