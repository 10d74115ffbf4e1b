from __future__ import annotations

import asyncio

import pytest

from tests.conftest import MAIN_BIN, VOTES_BIN, no_sleep
from wgcasting.services.documents import MainDocument
from wgcasting.services.jsonbin import (
    BinNotFoundError,
    DocumentDecodeError,
    StoreConfigurationError,
    StoreRequestError,
)
from wgcasting.services.repository import BinIds, initialize_bins
from wgcasting.services.throttling import RateLimiter


def test_reads_are_cached_within_freshness_window(fake_store, make_repository) -> None:
    now = [0.0]
    repository = make_repository(clock=lambda: now[0])

    async def run() -> list[int]:
        counts = []
        await repository.read_main()
        now[0] = 5.0
        await repository.read_main()
        counts.append(fake_store.count("GET", MAIN_BIN))
        now[0] = 10.5
        await repository.read_main()
        counts.append(fake_store.count("GET", MAIN_BIN))
        return counts

    assert asyncio.run(run()) == [1, 2]


def test_force_refresh_bypasses_cache(fake_store, repository) -> None:
    async def run() -> None:
        await repository.read_main()
        await repository.read_main(force_refresh=True)

    asyncio.run(run())

    assert fake_store.count("GET", MAIN_BIN) == 2


def test_invalidate_cache_forces_next_read(fake_store, repository) -> None:
    async def run() -> None:
        await repository.read_main()
        repository.invalidate_cache()
        await repository.read_main()

    asyncio.run(run())

    assert fake_store.count("GET", MAIN_BIN) == 2


def test_update_refetches_latest_document_despite_warm_cache(fake_store, repository) -> None:
    async def run() -> None:
        await repository.read_main()
        fake_store.bins[MAIN_BIN]["candidates"] = [{"id": "written-elsewhere"}]
        await repository.update_main(lambda latest: {"appointments": [{"id": "a1"}]})

    asyncio.run(run())

    stored = fake_store.bins[MAIN_BIN]
    assert stored["candidates"] == [{"id": "written-elsewhere"}]
    assert stored["appointments"] == [{"id": "a1"}]


def test_concurrent_updates_never_overlap_and_lose_nothing(fake_store, repository) -> None:
    def add_candidate(index: int):
        def transform(latest: MainDocument) -> dict:
            return {"candidates": [*latest.candidates, {"id": f"c{index}"}]}

        return transform

    async def run() -> None:
        await asyncio.gather(*(repository.update_main(add_candidate(index)) for index in range(5)))

    asyncio.run(run())

    assert fake_store.max_concurrent_puts == 1
    assert sorted(item["id"] for item in fake_store.bins[MAIN_BIN]["candidates"]) == [
        "c0",
        "c1",
        "c2",
        "c3",
        "c4",
    ]


def test_update_normalizes_stored_shape(fake_store, repository) -> None:
    fake_store.bins[MAIN_BIN] = {"candidates": "broken", "appointments": [{"id": "a1"}]}

    asyncio.run(repository.update_main(lambda latest: {"slotNotes": [{"id": "n1"}]}))

    assert fake_store.bins[MAIN_BIN] == {
        "candidates": [],
        "slotNotes": [{"id": "n1"}],
        "appointments": [{"id": "a1"}],
        "votes": [],
    }


def test_async_transforms_are_awaited(fake_store, repository) -> None:
    async def transform(latest: MainDocument) -> dict:
        await asyncio.sleep(0)
        return {"candidates": [{"id": "async"}]}

    asyncio.run(repository.update_main(transform))

    assert fake_store.bins[MAIN_BIN]["candidates"] == [{"id": "async"}]


def test_written_value_refreshes_cache(fake_store, repository) -> None:
    async def run() -> MainDocument:
        await repository.update_main(lambda latest: {"candidates": [{"id": "c1"}]})
        return await repository.read_main()

    document = asyncio.run(run())

    assert document.candidates == [{"id": "c1"}]
    assert fake_store.count("GET", MAIN_BIN) == 1


def test_transform_error_skips_write(fake_store, repository) -> None:
    def transform(latest: MainDocument) -> dict:
        raise ValueError("invalid edit")

    with pytest.raises(ValueError):
        asyncio.run(repository.update_main(transform))

    assert fake_store.count("PUT") == 0
    assert repository.serializer.pending(f"main:{MAIN_BIN}") == 0


def test_failed_write_does_not_block_following_writes(fake_store, repository) -> None:
    async def run() -> None:
        fake_store.failures[MAIN_BIN] = 500
        with pytest.raises(StoreRequestError):
            await repository.update_main(lambda latest: {"candidates": [{"id": "lost"}]})
        del fake_store.failures[MAIN_BIN]
        await repository.update_main(lambda latest: {"candidates": [{"id": "kept"}]})

    asyncio.run(run())

    assert fake_store.bins[MAIN_BIN]["candidates"] == [{"id": "kept"}]


def test_rate_limited_requests_are_retried(fake_store, repository) -> None:
    fake_store.rate_limited_responses = 2

    document = asyncio.run(repository.read_votes())

    assert document.users == {}
    assert fake_store.count("GET", VOTES_BIN) == 3


def test_votes_without_votes_bin_is_a_configuration_error(make_repository) -> None:
    repository = make_repository(votes_bin=None)

    assert repository.has_votes_bin is False
    with pytest.raises(StoreConfigurationError):
        asyncio.run(repository.read_votes())


def test_empty_record_reads_as_default_document(fake_store, repository) -> None:
    fake_store.bins[MAIN_BIN] = None

    assert asyncio.run(repository.read_main()) == MainDocument()


def test_non_object_record_raises_decode_error(fake_store, repository) -> None:
    fake_store.bins[MAIN_BIN] = ["not", "a", "document"]

    with pytest.raises(DocumentDecodeError):
        asyncio.run(repository.read_main())


def test_initialize_bins_creates_missing_bin(fake_store, store_client) -> None:
    del fake_store.bins[VOTES_BIN]

    bins = asyncio.run(
        initialize_bins(store_client, BinIds(main=MAIN_BIN, votes=VOTES_BIN), rate_limiter=RateLimiter(0.0))
    )

    assert bins == BinIds(main=MAIN_BIN, votes="created-1")
    assert fake_store.bins["created-1"] == {"users": {}}


def test_initialize_bins_retries_rate_limited_existence_check(fake_store, store_client) -> None:
    fake_store.rate_limited_responses = 1

    bins = asyncio.run(
        initialize_bins(
            store_client,
            BinIds(main=MAIN_BIN, votes=VOTES_BIN),
            rate_limiter=RateLimiter(0.0),
            retry_sleep=no_sleep,
        )
    )

    assert bins == BinIds(main=MAIN_BIN, votes=VOTES_BIN)
    assert fake_store.count("GET", MAIN_BIN) == 2
    assert fake_store.count("POST") == 0


def test_initialize_bins_without_votes_bin_uses_legacy_mode(store_client) -> None:
    bins = asyncio.run(initialize_bins(store_client, BinIds(main=MAIN_BIN), rate_limiter=RateLimiter(0.0)))

    assert bins == BinIds(main=MAIN_BIN, votes=None)


def test_initialize_bins_requires_main_bin(store_client) -> None:
    with pytest.raises(StoreConfigurationError):
        asyncio.run(initialize_bins(store_client, BinIds(main=None), rate_limiter=RateLimiter(0.0)))


def test_initialize_bins_without_auto_create_propagates_not_found(fake_store, store_client) -> None:
    del fake_store.bins[MAIN_BIN]

    with pytest.raises(BinNotFoundError):
        asyncio.run(
            initialize_bins(
                store_client,
                BinIds(main=MAIN_BIN),
                rate_limiter=RateLimiter(0.0),
                auto_create=False,
            )
        )
    assert fake_store.count("POST") == 0
