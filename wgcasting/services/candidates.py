"""Casting candidates stored in the main document."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel

from wgcasting.schemas.candidates import (
    Candidate,
    CandidateCreate,
    CandidateNote,
    CandidateNoteCreate,
    CandidateUpdate,
    CandidateVote,
)
from wgcasting.services.board import MainCollectionService, index_of
from wgcasting.services.documents import Record
from wgcasting.services.errors import CandidateNotFoundError

logger = logging.getLogger(__name__)


class CandidateService(MainCollectionService):
    """Create, update, vote on and annotate candidates."""

    field = "candidates"
    attribute = "candidates"

    async def read_candidates(self) -> list[Record]:
        return await self._read_items()

    async def write_candidates(self, candidates: Iterable[Mapping[str, Any] | BaseModel]) -> bool:
        return await self._write_items(candidates)

    async def add_candidate(self, data: CandidateCreate | Mapping[str, Any]) -> Record:
        """Store a new candidate with both statuses ``offen`` and no votes or notes."""

        payload = data if isinstance(data, CandidateCreate) else CandidateCreate.model_validate(data)
        record = Candidate(**payload.model_dump(exclude_none=True)).to_record()

        def append(items: list[Record]) -> Record:
            items.append(record)
            return record

        created = await self._mutate(append)
        logger.info("candidate added", extra={"candidate_id": created["id"]})
        return created

    async def update_candidate(
        self, candidate_id: str, changes: CandidateUpdate | Mapping[str, Any]
    ) -> Record:
        """Apply the fields present in ``changes``; unknown ids raise without writing."""

        update = changes if isinstance(changes, CandidateUpdate) else CandidateUpdate.model_validate(changes)
        fields = update.model_dump(by_alias=True, exclude_unset=True)

        def apply(items: list[Record]) -> Record:
            index = self._require(items, candidate_id)
            candidate = dict(items[index])
            for key, value in fields.items():
                if value is None:
                    if key == "link":
                        candidate.pop("link", None)
                    continue
                candidate[key] = value
            items[index] = candidate
            return candidate

        return await self._mutate(apply)

    async def delete_candidate(self, candidate_id: str) -> None:
        def remove(items: list[Record]) -> None:
            del items[self._require(items, candidate_id)]

        await self._mutate(remove)
        logger.info("candidate deleted", extra={"candidate_id": candidate_id})

    async def cast_vote(self, candidate_id: str, username: str, vote: CandidateVote | None) -> Record:
        """Record ``username``'s up/down vote; ``None`` retracts it."""

        def apply(items: list[Record]) -> Record:
            index = self._require(items, candidate_id)
            candidate = dict(items[index])
            votes = dict(candidate.get("votes") or {})
            if vote is None:
                votes.pop(username, None)
            else:
                votes[username] = vote
            candidate["votes"] = votes
            items[index] = candidate
            return candidate

        return await self._mutate(apply)

    async def add_note(self, candidate_id: str, note: CandidateNoteCreate | Mapping[str, Any]) -> Record:
        payload = note if isinstance(note, CandidateNoteCreate) else CandidateNoteCreate.model_validate(note)
        record = CandidateNote(**payload.model_dump()).to_record()

        def apply(items: list[Record]) -> Record:
            index = self._require(items, candidate_id)
            candidate = dict(items[index])
            candidate["notes"] = [*(candidate.get("notes") or []), record]
            items[index] = candidate
            return record

        return await self._mutate(apply)

    @staticmethod
    def _require(items: list[Record], candidate_id: str) -> int:
        index = index_of(items, candidate_id)
        if index is None:
            raise CandidateNotFoundError(f"Candidate '{candidate_id}' was not found")
        return index


__all__ = ["CandidateService"]
