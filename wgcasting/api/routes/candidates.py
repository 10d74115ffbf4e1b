"""Casting candidate endpoints."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Response, status

from wgcasting.api.deps import get_candidate_service
from wgcasting.schemas import CandidateCreate, CandidateNoteCreate, CandidateUpdate, CandidateVoteRequest
from wgcasting.services.candidates import CandidateService

router = APIRouter()


@router.get("")
async def list_candidates(service: CandidateService = Depends(get_candidate_service)) -> list[dict[str, Any]]:
    return await service.read_candidates()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_candidate(
    payload: CandidateCreate,
    service: CandidateService = Depends(get_candidate_service),
) -> dict[str, Any]:
    return await service.add_candidate(payload)


@router.patch("/{candidate_id}")
async def update_candidate(
    candidate_id: str,
    payload: CandidateUpdate,
    service: CandidateService = Depends(get_candidate_service),
) -> dict[str, Any]:
    return await service.update_candidate(candidate_id, payload)


@router.delete("/{candidate_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_candidate(
    candidate_id: str,
    service: CandidateService = Depends(get_candidate_service),
) -> Response:
    await service.delete_candidate(candidate_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{candidate_id}/votes")
async def vote_on_candidate(
    candidate_id: str,
    payload: CandidateVoteRequest,
    service: CandidateService = Depends(get_candidate_service),
) -> dict[str, Any]:
    return await service.cast_vote(candidate_id, payload.username, payload.vote)


@router.post("/{candidate_id}/notes", status_code=status.HTTP_201_CREATED)
async def add_candidate_note(
    candidate_id: str,
    payload: CandidateNoteCreate,
    service: CandidateService = Depends(get_candidate_service),
) -> dict[str, Any]:
    return await service.add_note(candidate_id, payload)
