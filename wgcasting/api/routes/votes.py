"""Availability vote endpoints."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from wgcasting.api.deps import get_vote_service
from wgcasting.schemas import HeatmapResponse, VoteSubmission
from wgcasting.services.votes import VoteService, rank_hours

router = APIRouter()


@router.get("/votes")
async def list_votes(service: VoteService = Depends(get_vote_service)) -> list[dict[str, Any]]:
    return await service.read_votes()


@router.post("/votes")
async def submit_votes(
    payload: VoteSubmission,
    service: VoteService = Depends(get_vote_service),
) -> dict[str, Any]:
    """Replace the votes of ``payload.username``; other users are untouched."""

    saved = await service.update_user_votes(payload.username, payload.votes)
    if not saved:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to save votes")
    return {"success": True, "message": "Votes saved successfully"}


@router.get("/usernames")
async def list_usernames(service: VoteService = Depends(get_vote_service)) -> list[str]:
    return await service.list_usernames()


@router.get("/heatmap", response_model=HeatmapResponse)
async def heatmap(
    day: str = Query(..., pattern=r"^\d{4}-\d{2}-\d{2}$"),
    service: VoteService = Depends(get_vote_service),
) -> HeatmapResponse:
    counts = await service.heatmap(day)
    return HeatmapResponse(day=day, hours=counts, best_slots=rank_hours(counts))
