"""Common dependencies for API routes."""
from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status

from wgcasting.services.appointments import AppointmentService
from wgcasting.services.candidates import CandidateService
from wgcasting.services.repository import DocumentRepository
from wgcasting.services.slot_notes import SlotNoteService
from wgcasting.services.votes import VoteService


def get_repository(request: Request) -> DocumentRepository:
    """Return the repository created during application startup."""

    repository: DocumentRepository | None = getattr(request.app.state, "repository", None)
    if repository is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Document store is not initialised",
        )
    return repository


def get_vote_service(repository: DocumentRepository = Depends(get_repository)) -> VoteService:
    return VoteService(repository)


def get_candidate_service(repository: DocumentRepository = Depends(get_repository)) -> CandidateService:
    return CandidateService(repository)


def get_slot_note_service(repository: DocumentRepository = Depends(get_repository)) -> SlotNoteService:
    return SlotNoteService(repository)


def get_appointment_service(
    repository: DocumentRepository = Depends(get_repository),
) -> AppointmentService:
    return AppointmentService(repository)


__all__ = [
    "get_appointment_service",
    "get_candidate_service",
    "get_repository",
    "get_slot_note_service",
    "get_vote_service",
]
