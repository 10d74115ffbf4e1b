"""Shared plumbing for collections stored in the main document."""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, ClassVar, TypeVar

from pydantic import BaseModel

from wgcasting.services.documents import MainDocument, Record
from wgcasting.services.jsonbin import StoreConfigurationError, StoreError
from wgcasting.services.repository import DocumentRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


def as_record(item: Mapping[str, Any] | BaseModel) -> Record:
    if isinstance(item, BaseModel):
        return item.model_dump(by_alias=True, exclude_none=True)
    return dict(item)


def index_of(items: list[Record], item_id: str) -> int | None:
    for index, item in enumerate(items):
        if isinstance(item, Mapping) and item.get("id") == item_id:
            return index
    return None


class MainCollectionService:
    """Base for services owning one array field of the main document.

    Every mutation goes through :meth:`_mutate`, which runs inside the
    repository's serialized read-modify-write cycle.
    """

    field: ClassVar[str]
    attribute: ClassVar[str]

    def __init__(self, repository: DocumentRepository) -> None:
        self._repository = repository

    async def _read_items(self) -> list[Record]:
        try:
            document = await self._repository.read_main()
        except StoreError:
            logger.exception("failed to read collection", extra={"field": self.field})
            return []
        return list(getattr(document, self.attribute))

    async def _write_items(self, items: Iterable[Mapping[str, Any] | BaseModel]) -> bool:
        records = [as_record(item) for item in items]

        def replace(_latest: MainDocument) -> dict[str, Any]:
            return {self.field: records}

        try:
            await self._repository.update_main(replace)
        except StoreConfigurationError:
            raise
        except StoreError:
            logger.exception("failed to write collection", extra={"field": self.field})
            return False
        return True

    async def _mutate(self, edit: Callable[[list[Record]], T]) -> T:
        """Apply ``edit`` to a fresh copy of the collection and persist it.

        ``edit`` changes the list in place and returns the operation's result.
        If it raises, nothing is written.
        """

        outcome: dict[str, T] = {}

        def transform(latest: MainDocument) -> dict[str, Any]:
            items = list(getattr(latest, self.attribute))
            outcome["result"] = edit(items)
            return {self.field: items}

        await self._repository.update_main(transform)
        return outcome["result"]


__all__ = ["MainCollectionService", "as_record", "index_of"]
