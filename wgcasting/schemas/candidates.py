"""Schemas for casting candidates."""
from __future__ import annotations

from typing import Literal
from uuid import uuid4

from pydantic import Field

from wgcasting.schemas.common import CamelModel, now_millis

ProgressStatus = Literal["offen", "geplant", "abgeschlossen"]
CandidateVote = Literal["up", "down"]


class CandidateNote(CamelModel):
    id: str = Field(default_factory=lambda: uuid4().hex)
    text: str = Field(..., min_length=1, max_length=2000)
    user_id: str = Field(..., min_length=1, max_length=64)
    timestamp: int = Field(default_factory=now_millis)


class CandidateCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)
    link: str | None = Field(default=None, max_length=2000)


class CandidateUpdate(CamelModel):
    """Partial update; only fields that were sent are applied."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    link: str | None = Field(default=None, max_length=2000)
    besichtigung_status: ProgressStatus | None = None
    casting_status: ProgressStatus | None = None


class Candidate(CandidateCreate):
    id: str = Field(default_factory=lambda: uuid4().hex)
    besichtigung_status: ProgressStatus = "offen"
    casting_status: ProgressStatus = "offen"
    votes: dict[str, CandidateVote] = Field(default_factory=dict)
    notes: list[CandidateNote] = Field(default_factory=list)


class CandidateVoteRequest(CamelModel):
    username: str = Field(..., min_length=1, max_length=64)
    vote: CandidateVote | None = Field(default=None, description="Omit or null to retract the vote")


class CandidateNoteCreate(CamelModel):
    text: str = Field(..., min_length=1, max_length=2000)
    user_id: str = Field(..., min_length=1, max_length=64)


__all__ = [
    "Candidate",
    "CandidateCreate",
    "CandidateNote",
    "CandidateNoteCreate",
    "CandidateUpdate",
    "CandidateVote",
    "CandidateVoteRequest",
    "ProgressStatus",
]
