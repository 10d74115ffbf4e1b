"""Schemas for scheduled appointments and their comments."""
from __future__ import annotations

from typing import Literal
from uuid import uuid4

from pydantic import Field

from wgcasting.schemas.common import CamelModel, now_millis

AppointmentType = Literal["Vor Ort", "Online"]

_DAY_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
_TIME_PATTERN = r"^\d{2}:\d{2}$"


class Comment(CamelModel):
    id: str = Field(default_factory=lambda: uuid4().hex)
    text: str = Field(..., min_length=1, max_length=2000)
    user_id: str = Field(..., min_length=1, max_length=64)
    timestamp: int = Field(default_factory=now_millis)


class CommentCreate(CamelModel):
    text: str = Field(..., min_length=1, max_length=2000)
    user_id: str = Field(..., min_length=1, max_length=64)


class AppointmentCreate(CamelModel):
    id: str | None = Field(default=None, max_length=64, description="Optional client-supplied id")
    title: str = Field(..., min_length=1, max_length=200)
    date: str = Field(..., pattern=_DAY_PATTERN)
    start_time: str = Field(..., pattern=_TIME_PATTERN)
    end_time: str = Field(..., pattern=_TIME_PATTERN)
    type: AppointmentType = "Vor Ort"


class AppointmentUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    date: str | None = Field(default=None, pattern=_DAY_PATTERN)
    start_time: str | None = Field(default=None, pattern=_TIME_PATTERN)
    end_time: str | None = Field(default=None, pattern=_TIME_PATTERN)
    type: AppointmentType | None = None


class Appointment(AppointmentCreate):
    id: str = Field(default_factory=lambda: uuid4().hex)
    comments: list[Comment] = Field(default_factory=list)


__all__ = [
    "Appointment",
    "AppointmentCreate",
    "AppointmentType",
    "AppointmentUpdate",
    "Comment",
    "CommentCreate",
]
