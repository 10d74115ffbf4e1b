"""Notes attached to calendar slots."""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel

from wgcasting.schemas.slot_notes import SlotNote
from wgcasting.services.board import MainCollectionService, as_record, index_of
from wgcasting.services.documents import Record
from wgcasting.services.errors import SlotNoteNotFoundError


class SlotNoteService(MainCollectionService):
    field = "slotNotes"
    attribute = "slot_notes"

    async def read_slot_notes(self) -> list[Record]:
        return await self._read_items()

    async def write_slot_notes(self, notes: Iterable[Mapping[str, Any] | BaseModel]) -> bool:
        return await self._write_items(notes)

    async def notes_for_slot(self, slot_id: str) -> list[Record]:
        return [note for note in await self._read_items() if note.get("slotId") == slot_id]

    async def upsert_notes(self, notes: Iterable[SlotNote | Mapping[str, Any]]) -> list[Record]:
        """Merge ``notes`` by id: same id replaces, everything else is kept.

        Within one batch the last note for an id wins.
        """

        by_id: dict[str, Record] = {}
        for note in notes:
            record = as_record(note if isinstance(note, SlotNote) else SlotNote.model_validate(note))
            by_id[record["id"]] = record
        incoming = list(by_id.values())
        incoming_ids = set(by_id)

        def merge(items: list[Record]) -> list[Record]:
            kept = [item for item in items if not (isinstance(item, Mapping) and item.get("id") in incoming_ids)]
            items[:] = [*kept, *incoming]
            return list(items)

        return await self._mutate(merge)

    async def delete_note(self, note_id: str) -> None:
        def remove(items: list[Record]) -> None:
            index = index_of(items, note_id)
            if index is None:
                raise SlotNoteNotFoundError(f"Slot note '{note_id}' was not found")
            del items[index]

        await self._mutate(remove)


__all__ = ["SlotNoteService"]
