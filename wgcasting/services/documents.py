"""Typed views of the two stored documents and their normalization rules."""
from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

from wgcasting.services.jsonbin import DocumentDecodeError

logger = logging.getLogger(__name__)

Record = dict[str, Any]

# Python attribute name -> stored JSON key
_MAIN_FIELDS: dict[str, str] = {
    "candidates": "candidates",
    "slot_notes": "slotNotes",
    "appointments": "appointments",
    "votes": "votes",
}


DocumentT = TypeVar("DocumentT", "MainDocument", "VotesDocument")


def _require_object(record: Any, label: str) -> Mapping[str, Any] | None:
    if record is None:
        return None
    if not isinstance(record, Mapping):
        raise DocumentDecodeError(f"{label} document must be a JSON object, got {type(record).__name__}")
    return record


def _list_field(record: Mapping[str, Any], key: str, label: str) -> list[Any]:
    value = record.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        logger.warning(
            "stored field has unexpected shape, treating it as empty",
            extra={"document": label, "field": key, "type": type(value).__name__},
        )
        return []
    return copy.deepcopy(value)


@dataclass(slots=True)
class MainDocument:
    """Candidates, slot notes, appointments and the legacy ``votes`` array."""

    candidates: list[Record] = field(default_factory=list)
    slot_notes: list[Record] = field(default_factory=list)
    appointments: list[Record] = field(default_factory=list)
    votes: list[Record] = field(default_factory=list)

    @classmethod
    def from_record(cls, record: Any) -> "MainDocument":
        mapping = _require_object(record, "main")
        if mapping is None:
            return cls()
        return cls(**{attr: _list_field(mapping, key, "main") for attr, key in _MAIN_FIELDS.items()})

    def to_record(self) -> Record:
        return {key: getattr(self, attr) for attr, key in _MAIN_FIELDS.items()}

    def merged(self, updates: Mapping[str, Any]) -> "MainDocument":
        """Apply ``updates`` keyed by stored JSON names.

        Any field missing from ``updates`` or not a list keeps the current value.
        """

        values: dict[str, list[Record]] = {}
        for attr, key in _MAIN_FIELDS.items():
            candidate = updates.get(key)
            values[attr] = candidate if isinstance(candidate, list) else getattr(self, attr)
        return MainDocument(**values)


@dataclass(slots=True)
class VotesDocument:
    """Per-user vote lists: ``{"users": {username: [entry, ...]}}``."""

    users: dict[str, list[Record]] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: Any) -> "VotesDocument":
        mapping = _require_object(record, "votes")
        if mapping is None:
            return cls()
        raw_users = mapping.get("users")
        if raw_users is None:
            return cls()
        if not isinstance(raw_users, Mapping):
            logger.warning(
                "stored field has unexpected shape, treating it as empty",
                extra={"document": "votes", "field": "users", "type": type(raw_users).__name__},
            )
            return cls()
        users: dict[str, list[Record]] = {}
        for username, entries in raw_users.items():
            if isinstance(entries, list):
                users[str(username)] = copy.deepcopy(entries)
        return cls(users=users)

    def to_record(self) -> Record:
        return {"users": self.users}

    def merged(self, updates: Mapping[str, Any]) -> "VotesDocument":
        candidate = updates.get("users")
        users = dict(candidate) if isinstance(candidate, Mapping) else self.users
        return VotesDocument(users=users)


DEFAULT_MAIN_RECORD: Record = MainDocument().to_record()
DEFAULT_VOTES_RECORD: Record = VotesDocument().to_record()


__all__ = [
    "DEFAULT_MAIN_RECORD",
    "DEFAULT_VOTES_RECORD",
    "DocumentT",
    "MainDocument",
    "Record",
    "VotesDocument",
]
