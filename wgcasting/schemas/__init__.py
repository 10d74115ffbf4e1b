"""Pydantic schemas package."""

from .appointments import (
    Appointment,
    AppointmentCreate,
    AppointmentType,
    AppointmentUpdate,
    Comment,
    CommentCreate,
)
from .candidates import (
    Candidate,
    CandidateCreate,
    CandidateNote,
    CandidateNoteCreate,
    CandidateUpdate,
    CandidateVote,
    CandidateVoteRequest,
    ProgressStatus,
)
from .slot_notes import SlotNote
from .votes import HeatmapResponse, UserVoteEntry, VoteEntry, VoteStatus, VoteSubmission

__all__ = [
    "Appointment",
    "AppointmentCreate",
    "AppointmentType",
    "AppointmentUpdate",
    "Candidate",
    "CandidateCreate",
    "CandidateNote",
    "CandidateNoteCreate",
    "CandidateUpdate",
    "CandidateVote",
    "CandidateVoteRequest",
    "Comment",
    "CommentCreate",
    "HeatmapResponse",
    "ProgressStatus",
    "SlotNote",
    "UserVoteEntry",
    "VoteEntry",
    "VoteStatus",
    "VoteSubmission",
]
