"""Appointments and their comment threads."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel

from wgcasting.schemas.appointments import (
    Appointment,
    AppointmentCreate,
    AppointmentUpdate,
    Comment,
    CommentCreate,
)
from wgcasting.services.board import MainCollectionService, index_of
from wgcasting.services.documents import Record
from wgcasting.services.errors import AppointmentNotFoundError

logger = logging.getLogger(__name__)


class AppointmentService(MainCollectionService):
    field = "appointments"
    attribute = "appointments"

    async def read_appointments(self) -> list[Record]:
        return await self._read_items()

    async def write_appointments(self, appointments: Iterable[Mapping[str, Any] | BaseModel]) -> bool:
        return await self._write_items(appointments)

    async def create_appointment(self, data: AppointmentCreate | Mapping[str, Any]) -> Record:
        """Store a new appointment; a missing id is replaced by a random UUID."""

        payload = data if isinstance(data, AppointmentCreate) else AppointmentCreate.model_validate(data)
        record = Appointment(**payload.model_dump(exclude_none=True)).to_record()

        def append(items: list[Record]) -> Record:
            items.append(record)
            return record

        created = await self._mutate(append)
        logger.info("appointment created", extra={"appointment_id": created["id"]})
        return created

    async def update_appointment(
        self, appointment_id: str, changes: AppointmentUpdate | Mapping[str, Any]
    ) -> Record:
        update = changes if isinstance(changes, AppointmentUpdate) else AppointmentUpdate.model_validate(changes)
        fields = update.model_dump(by_alias=True, exclude_none=True)

        def apply(items: list[Record]) -> Record:
            index = self._require(items, appointment_id)
            appointment = {**items[index], **fields}
            items[index] = appointment
            return appointment

        return await self._mutate(apply)

    async def delete_appointment(self, appointment_id: str) -> None:
        def remove(items: list[Record]) -> None:
            del items[self._require(items, appointment_id)]

        await self._mutate(remove)

    async def add_comment(self, appointment_id: str, comment: CommentCreate | Mapping[str, Any]) -> Record:
        """Append a comment; existing comments are never replaced."""

        payload = comment if isinstance(comment, CommentCreate) else CommentCreate.model_validate(comment)
        record = Comment(**payload.model_dump()).to_record()

        def apply(items: list[Record]) -> Record:
            index = self._require(items, appointment_id)
            appointment = dict(items[index])
            appointment["comments"] = [*(appointment.get("comments") or []), record]
            items[index] = appointment
            return record

        return await self._mutate(apply)

    @staticmethod
    def _require(items: list[Record], appointment_id: str) -> int:
        index = index_of(items, appointment_id)
        if index is None:
            raise AppointmentNotFoundError(f"Appointment '{appointment_id}' was not found")
        return index


__all__ = ["AppointmentService"]
