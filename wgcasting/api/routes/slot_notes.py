"""Slot note endpoints."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Response, status

from wgcasting.api.deps import get_slot_note_service
from wgcasting.schemas import SlotNote
from wgcasting.services.slot_notes import SlotNoteService

router = APIRouter()


@router.get("")
async def list_slot_notes(
    slot_id: str | None = None,
    service: SlotNoteService = Depends(get_slot_note_service),
) -> list[dict[str, Any]]:
    if slot_id:
        return await service.notes_for_slot(slot_id)
    return await service.read_slot_notes()


@router.post("")
async def upsert_slot_notes(
    payload: list[SlotNote],
    service: SlotNoteService = Depends(get_slot_note_service),
) -> list[dict[str, Any]]:
    """Insert or replace notes by id and return the full note list."""

    return await service.upsert_notes(payload)


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_slot_note(
    note_id: str,
    service: SlotNoteService = Depends(get_slot_note_service),
) -> Response:
    await service.delete_note(note_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
