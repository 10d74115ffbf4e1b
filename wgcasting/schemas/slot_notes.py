"""Schemas for notes attached to calendar slots."""
from __future__ import annotations

from uuid import uuid4

from pydantic import Field

from wgcasting.schemas.common import CamelModel, now_millis


class SlotNote(CamelModel):
    """Note keyed by ``slotId`` (``YYYY-MM-DD-HH`` or a day-level ``YYYY-MM-DD``)."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    slot_id: str = Field(..., min_length=1, max_length=64)
    text: str = Field(..., max_length=2000)
    user_id: str = Field(..., min_length=1, max_length=64)
    timestamp: int = Field(default_factory=now_millis)


__all__ = ["SlotNote"]
