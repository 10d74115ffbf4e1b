"""Availability votes: per-user vote lists in the votes document."""
from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel

from wgcasting.services.documents import MainDocument, Record, VotesDocument
from wgcasting.services.jsonbin import StoreConfigurationError, StoreError
from wgcasting.services.repository import DocumentRepository

logger = logging.getLogger(__name__)

HEATMAP_HOURS = range(10, 23)
_AVAILABLE_STATUSES = frozenset({"present", "online"})


def _as_mapping(entry: Mapping[str, Any] | BaseModel) -> Mapping[str, Any]:
    if isinstance(entry, BaseModel):
        return entry.model_dump()
    return entry


def vote_record(entry: Mapping[str, Any] | BaseModel) -> Record:
    """Strip an entry down to the stored ``day/start/end/status`` fields."""

    data = _as_mapping(entry)
    return {
        "day": data.get("day"),
        "start": data.get("start"),
        "end": data.get("end"),
        "status": data.get("status") or "present",
    }


def _hour(value: Any) -> int | None:
    try:
        return int(str(value).split(":", 1)[0])
    except (TypeError, ValueError):
        return None


class VoteService:
    """Reads and writes availability votes.

    With a dedicated votes bin the entries live in ``{"users": {name: [...]}}``.
    Without one they are kept in the main document's legacy ``votes`` array,
    each entry carrying its ``username``.
    """

    def __init__(self, repository: DocumentRepository) -> None:
        self._repository = repository

    async def read_votes(self) -> list[Record]:
        """Return all entries tagged with ``username``; empty on any failure."""

        try:
            if self._repository.has_votes_bin:
                document = await self._repository.read_votes()
                return [
                    {**entry, "username": username}
                    for username, entries in document.users.items()
                    for entry in entries
                    if isinstance(entry, Mapping)
                ]
            main = await self._repository.read_main()
            return list(main.votes)
        except StoreError:
            logger.exception("failed to read votes")
            return []

    async def write_votes(self, entries: Iterable[Mapping[str, Any] | BaseModel]) -> bool:
        """Replace every user's votes with ``entries``."""

        entries = [_as_mapping(entry) for entry in entries]
        try:
            if self._repository.has_votes_bin:
                grouped: dict[str, list[Record]] = defaultdict(list)
                for entry in entries:
                    owner = entry.get("username") or entry.get("userId") or "unknown"
                    grouped[str(owner)].append(vote_record(entry))

                def replace_users(_latest: VotesDocument) -> dict[str, Any]:
                    return {"users": dict(grouped)}

                await self._repository.update_votes(replace_users)
            else:
                legacy = [dict(entry) for entry in entries]

                def replace_legacy(_latest: MainDocument) -> dict[str, Any]:
                    return {"votes": legacy}

                await self._repository.update_main(replace_legacy)
        except StoreConfigurationError:
            raise
        except StoreError:
            logger.exception("failed to write votes")
            return False
        return True

    async def update_user_votes(
        self, username: str, entries: Iterable[Mapping[str, Any] | BaseModel]
    ) -> bool:
        """Replace only ``username``'s entries, leaving other users untouched."""

        records = [vote_record(entry) for entry in entries]
        try:
            if self._repository.has_votes_bin:

                def replace_user(latest: VotesDocument) -> dict[str, Any]:
                    users = dict(latest.users)
                    users[username] = records
                    return {"users": users}

                await self._repository.update_votes(replace_user)
            else:

                def replace_user_legacy(latest: MainDocument) -> dict[str, Any]:
                    kept = [
                        vote
                        for vote in latest.votes
                        if isinstance(vote, Mapping) and vote.get("username") != username
                    ]
                    kept.extend({"username": username, **record} for record in records)
                    return {"votes": kept}

                await self._repository.update_main(replace_user_legacy)
        except StoreConfigurationError:
            raise
        except StoreError:
            logger.exception("failed to update user votes", extra={"username": username})
            return False
        logger.info("user votes updated", extra={"username": username, "entries": len(records)})
        return True

    async def list_usernames(self) -> list[str]:
        seen: dict[str, None] = {}
        for vote in await self.read_votes():
            name = vote.get("username")
            if name:
                seen.setdefault(str(name), None)
        return list(seen)

    async def heatmap(self, day: str) -> dict[int, int]:
        """Count distinct users marked present or online per hour of ``day``."""

        users_by_hour: dict[int, set[str]] = {hour: set() for hour in HEATMAP_HOURS}
        for vote in await self.read_votes():
            if vote.get("day") != day or (vote.get("status") or "present") not in _AVAILABLE_STATUSES:
                continue
            start, end = _hour(vote.get("start")), _hour(vote.get("end"))
            if start is None or end is None:
                continue
            for hour in range(start, end):
                if hour in users_by_hour:
                    users_by_hour[hour].add(str(vote.get("username")))
        return {hour: len(users) for hour, users in users_by_hour.items()}

    async def best_time_slots(self, day: str) -> list[dict[str, int]]:
        return rank_hours(await self.heatmap(day))


def rank_hours(counts: Mapping[int, int]) -> list[dict[str, int]]:
    """Hours with at least one available user, busiest first."""

    ranked = [{"hour": hour, "userCount": count} for hour, count in counts.items() if count > 0]
    return sorted(ranked, key=lambda slot: slot["userCount"], reverse=True)


__all__ = ["HEATMAP_HOURS", "VoteService", "rank_hours", "vote_record"]
