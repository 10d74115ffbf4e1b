"""Periodic backup worker."""

from .main import EXIT_FAILED, EXIT_MISCONFIGURED, EXIT_OK, run, run_once
from .scheduler import next_backup_slot, run_backup_scheduler

__all__ = [
    "EXIT_FAILED",
    "EXIT_MISCONFIGURED",
    "EXIT_OK",
    "next_backup_slot",
    "run",
    "run_backup_scheduler",
    "run_once",
]
