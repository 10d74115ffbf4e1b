"""Cached reads and serialized read-modify-write updates of the stored documents."""
from __future__ import annotations

import asyncio
import copy
import enum
import inspect
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Generic

from wgcasting.core.config import Settings
from wgcasting.obs import STORE_REQUEST_COUNTER
from wgcasting.services.cache import DocumentCache
from wgcasting.services.documents import (
    DEFAULT_MAIN_RECORD,
    DEFAULT_VOTES_RECORD,
    DocumentT,
    MainDocument,
    Record,
    VotesDocument,
)
from wgcasting.services.jsonbin import (
    BinNotFoundError,
    JsonBinClient,
    StoreConfigurationError,
    StoreError,
)
from wgcasting.services.throttling import RateLimiter, SleepFn, run_with_retry
from wgcasting.services.write_queue import WriteSerializer

logger = logging.getLogger(__name__)

Transform = Callable[[DocumentT], Mapping[str, Any] | Awaitable[Mapping[str, Any]]]


class DocumentKind(str, enum.Enum):
    MAIN = "main"
    VOTES = "votes"


@dataclass(slots=True, frozen=True)
class BinIds:
    """Resolved bin identifiers. ``votes`` is ``None`` in legacy mode."""

    main: str | None
    votes: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "BinIds":
        return cls(main=settings.jsonbin_bin_id, votes=settings.jsonbin_votes_bin_id)


@dataclass(slots=True)
class _Channel(Generic[DocumentT]):
    kind: DocumentKind
    bin_id: str | None
    cache: DocumentCache[Record]
    decode: Callable[[Any], DocumentT]
    default_record: Record


class DocumentRepository:
    """Single entry point for reading and writing the main and votes documents."""

    def __init__(
        self,
        client: JsonBinClient,
        bins: BinIds,
        *,
        rate_limiter: RateLimiter | None = None,
        max_attempts: int = 3,
        cache_freshness_seconds: float = 10.0,
        retry_sleep: SleepFn = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        serializer: WriteSerializer | None = None,
    ) -> None:
        self._client = client
        self._bins = bins
        self._rate_limiter = rate_limiter or RateLimiter()
        self._max_attempts = max_attempts
        self._retry_sleep = retry_sleep
        self._serializer = serializer or WriteSerializer()
        self._main: _Channel[MainDocument] = _Channel(
            kind=DocumentKind.MAIN,
            bin_id=bins.main,
            cache=DocumentCache(cache_freshness_seconds, clock=clock),
            decode=MainDocument.from_record,
            default_record=DEFAULT_MAIN_RECORD,
        )
        self._votes: _Channel[VotesDocument] = _Channel(
            kind=DocumentKind.VOTES,
            bin_id=bins.votes,
            cache=DocumentCache(cache_freshness_seconds, clock=clock),
            decode=VotesDocument.from_record,
            default_record=DEFAULT_VOTES_RECORD,
        )

    @classmethod
    def from_settings(
        cls,
        client: JsonBinClient,
        settings: Settings,
        *,
        bins: BinIds | None = None,
    ) -> "DocumentRepository":
        return cls(
            client,
            bins or BinIds.from_settings(settings),
            rate_limiter=RateLimiter(settings.store_min_interval_seconds),
            max_attempts=settings.store_max_attempts,
            cache_freshness_seconds=settings.cache_freshness_seconds,
        )

    @property
    def bins(self) -> BinIds:
        return self._bins

    @property
    def has_votes_bin(self) -> bool:
        return bool(self._bins.votes)

    @property
    def serializer(self) -> WriteSerializer:
        return self._serializer

    def invalidate_cache(self) -> None:
        """Force the next reads of both documents to hit the store."""
        self._main.cache.invalidate()
        self._votes.cache.invalidate()

    async def _call(self, operation: str, label: str, call: Callable[[], Awaitable[Any]]) -> Any:
        async def attempt() -> Any:
            await self._rate_limiter.throttle()
            try:
                result = await call()
            except StoreError as exc:
                STORE_REQUEST_COUNTER.labels(operation=operation, document=label, outcome=type(exc).__name__).inc()
                raise
            STORE_REQUEST_COUNTER.labels(operation=operation, document=label, outcome="ok").inc()
            return result

        return await run_with_retry(attempt, max_attempts=self._max_attempts, sleep=self._retry_sleep)

    async def _fetch(self, channel: _Channel[DocumentT], *, force_refresh: bool) -> DocumentT:
        if channel.bin_id is None:
            raise StoreConfigurationError(f"No bin id configured for the {channel.kind.value} document")
        if not force_refresh:
            cached = channel.cache.get()
            if cached is not None:
                logger.debug("using cached document", extra={"document": channel.kind.value})
                return channel.decode(cached)

        record = await self._call("get", channel.kind.value, lambda: self._client.fetch(channel.bin_id))
        if record is None:
            record = copy.deepcopy(channel.default_record)
        document = channel.decode(record)
        channel.cache.set(copy.deepcopy(document.to_record()))
        return document

    async def _update(self, channel: _Channel[DocumentT], transform: Transform[DocumentT]) -> DocumentT:
        key = f"{channel.kind.value}:{channel.bin_id}"
        async with self._serializer.slot(key):
            latest = await self._fetch(channel, force_refresh=True)
            result = transform(latest)
            if inspect.isawaitable(result):
                result = await result
            updated = latest.merged(result or {})
            record = updated.to_record()
            await self._call("put", channel.kind.value, lambda: self._client.replace(channel.bin_id, record))
            channel.cache.set(copy.deepcopy(record))
            logger.debug("document written", extra={"document": channel.kind.value})
            return updated

    async def read_main(self, *, force_refresh: bool = False) -> MainDocument:
        return await self._fetch(self._main, force_refresh=force_refresh)

    async def read_votes(self, *, force_refresh: bool = False) -> VotesDocument:
        return await self._fetch(self._votes, force_refresh=force_refresh)

    async def update_main(self, transform: Transform[MainDocument]) -> MainDocument:
        """Serialized read-modify-write of the main document.

        ``transform`` receives a freshly fetched document and returns the fields
        to replace, keyed by their stored names (``"candidates"``,
        ``"slotNotes"``, ``"appointments"``, ``"votes"``).
        """
        return await self._update(self._main, transform)

    async def update_votes(self, transform: Transform[VotesDocument]) -> VotesDocument:
        """Serialized read-modify-write of the votes document (``{"users": ...}``)."""
        return await self._update(self._votes, transform)


async def initialize_bins(
    client: JsonBinClient,
    bins: BinIds,
    *,
    rate_limiter: RateLimiter | None = None,
    auto_create: bool = True,
    max_attempts: int = 3,
    retry_sleep: SleepFn = asyncio.sleep,
) -> BinIds:
    """Check that the configured bins exist, creating missing ones.

    Returns the ids to use from now on. A newly created id is reported in the
    log so the environment can be updated; nothing global is modified.
    """

    limiter = rate_limiter or RateLimiter()

    async def request(call: Callable[[], Awaitable[Any]]) -> Any:
        async def attempt() -> Any:
            await limiter.throttle()
            return await call()

        return await run_with_retry(attempt, max_attempts=max_attempts, sleep=retry_sleep)

    async def ensure(bin_id: str | None, default_record: Record, label: str) -> str | None:
        if not bin_id:
            return None
        try:
            await request(lambda: client.fetch(bin_id))
        except BinNotFoundError:
            if not auto_create:
                raise
            logger.warning("bin not found, creating a new one", extra={"document": label})
            new_id = await request(lambda: client.create(copy.deepcopy(default_record)))
            env_name = "JSONBIN_VOTES_BIN_ID" if label == "votes" else "JSONBIN_BIN_ID"
            logger.warning(
                "created new bin; set %s=%s to keep using it",
                env_name,
                new_id,
                extra={"document": label},
            )
            return new_id
        logger.info("bin exists and is accessible", extra={"document": label})
        return bin_id

    if not bins.main:
        raise StoreConfigurationError("JSONBIN_BIN_ID is not configured")
    main_id = await ensure(bins.main, DEFAULT_MAIN_RECORD, "main")
    votes_id = await ensure(bins.votes, DEFAULT_VOTES_RECORD, "votes")
    if votes_id is None:
        logger.warning("votes bin not configured; votes are stored in the main document (legacy mode)")
    return BinIds(main=main_id, votes=votes_id)


__all__ = [
    "BinIds",
    "DocumentKind",
    "DocumentRepository",
    "Transform",
    "initialize_bins",
]
