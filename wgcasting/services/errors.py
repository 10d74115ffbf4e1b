"""Domain errors raised by the board services."""
from __future__ import annotations


class BoardError(RuntimeError):
    """Base class for board service errors."""


class CandidateNotFoundError(BoardError):
    """Raised when no candidate has the requested id."""


class AppointmentNotFoundError(BoardError):
    """Raised when no appointment has the requested id."""


class SlotNoteNotFoundError(BoardError):
    """Raised when no slot note has the requested id."""


__all__ = [
    "AppointmentNotFoundError",
    "BoardError",
    "CandidateNotFoundError",
    "SlotNoteNotFoundError",
]
