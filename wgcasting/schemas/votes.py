"""Schemas for availability votes."""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

VoteStatus = Literal["present", "online", "unavailable"]

_DAY_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
_HOUR_PATTERN = r"^\d{2}:00$"


class VoteEntry(BaseModel):
    """One availability range of a single user on a single day."""

    day: str = Field(..., pattern=_DAY_PATTERN)
    start: str = Field(..., pattern=_HOUR_PATTERN)
    end: str = Field(..., pattern=_HOUR_PATTERN)
    status: VoteStatus = "present"


class UserVoteEntry(VoteEntry):
    """Vote entry tagged with the username that owns it."""

    username: str = Field(..., min_length=1, max_length=64)


class VoteSubmission(BaseModel):
    username: str = Field(..., min_length=1, max_length=64)
    votes: list[VoteEntry]


class HeatmapResponse(BaseModel):
    day: str
    hours: dict[int, int]
    best_slots: list[dict[str, int]]


__all__ = ["HeatmapResponse", "UserVoteEntry", "VoteEntry", "VoteStatus", "VoteSubmission"]
