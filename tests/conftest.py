from __future__ import annotations

import asyncio
import copy
import json
from collections.abc import Callable, Iterator
from pathlib import Path
import sys
from typing import Any

import httpx
import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from wgcasting.core.config import Settings
from wgcasting.main import create_application
from wgcasting.services.jsonbin import JsonBinClient
from wgcasting.services.repository import BinIds, DocumentRepository
from wgcasting.services.throttling import RateLimiter

BASE_URL = "https://jsonbin.test/v3"
API_KEY = "test-master-key"
MAIN_BIN = "main-bin"
VOTES_BIN = "votes-bin"


async def no_sleep(_seconds: float) -> None:
    return None


class FakeJsonBin:
    """In-memory bin store served through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.bins: dict[str, Any] = {
            MAIN_BIN: {"candidates": [], "slotNotes": [], "appointments": [], "votes": []},
            VOTES_BIN: {"users": {}},
        }
        self.requests: list[tuple[str, str]] = []
        self.rate_limited_responses = 0
        self.failures: dict[str, int] = {}
        self.max_concurrent_puts = 0
        self._puts_in_flight = 0
        self._created = 0

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def count(self, method: str, bin_id: str | None = None) -> int:
        return sum(
            1
            for sent_method, sent_bin in self.requests
            if sent_method == method and (bin_id is None or sent_bin == bin_id)
        )

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if request.headers.get("X-Master-Key") != API_KEY:
            return httpx.Response(401, json={"message": "Invalid key"})

        path = request.url.path.removeprefix("/v3")
        bin_id = path.removeprefix("/b").lstrip("/")
        self.requests.append((request.method, bin_id))
        await asyncio.sleep(0)

        if self.rate_limited_responses > 0:
            self.rate_limited_responses -= 1
            return httpx.Response(429, json={"message": "Too many requests"})
        if bin_id in self.failures:
            return httpx.Response(self.failures[bin_id], json={"message": "failure"})

        if request.method == "POST" and not bin_id:
            self._created += 1
            new_id = f"created-{self._created}"
            self.bins[new_id] = json.loads(request.content)
            return httpx.Response(200, json={"record": self.bins[new_id], "metadata": {"id": new_id}})

        if bin_id not in self.bins:
            return httpx.Response(404, json={"message": "Bin not found"})

        if request.method == "GET":
            return httpx.Response(
                200,
                json={"record": copy.deepcopy(self.bins[bin_id]), "metadata": {"id": bin_id}},
            )

        if request.method == "PUT":
            self._puts_in_flight += 1
            self.max_concurrent_puts = max(self.max_concurrent_puts, self._puts_in_flight)
            try:
                await asyncio.sleep(0)
                self.bins[bin_id] = json.loads(request.content)
            finally:
                self._puts_in_flight -= 1
            return httpx.Response(200, json={"record": self.bins[bin_id], "metadata": {"parentId": bin_id}})

        return httpx.Response(405, json={"message": "Method not allowed"})


class InMemoryS3Client:
    """Simple in-memory S3 stub exposing ``upload_file``."""

    def __init__(self) -> None:
        self._buckets: dict[str, dict[str, bytes]] = {}
        self.fail_uploads = False
        self.extra_args: list[dict[str, str] | None] = []

    def upload_file(
        self,
        Filename: str,
        Bucket: str,
        Key: str,
        ExtraArgs: dict[str, str] | None = None,
        **_: object,
    ) -> None:
        if self.fail_uploads:
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject")
        self._buckets.setdefault(Bucket, {})[Key] = Path(Filename).read_bytes()
        self.extra_args.append(ExtraArgs)

    @property
    def buckets(self) -> dict[str, dict[str, bytes]]:
        return self._buckets


@pytest.fixture()
def fake_store() -> FakeJsonBin:
    return FakeJsonBin()


@pytest.fixture()
def store_client(fake_store: FakeJsonBin) -> JsonBinClient:
    return JsonBinClient(BASE_URL, API_KEY, client=httpx.AsyncClient(transport=fake_store.transport()))


@pytest.fixture()
def make_repository(store_client: JsonBinClient) -> Callable[..., DocumentRepository]:
    def factory(
        *,
        votes_bin: str | None = VOTES_BIN,
        clock: Callable[[], float] | None = None,
        max_attempts: int = 3,
    ) -> DocumentRepository:
        options: dict[str, Any] = {}
        if clock is not None:
            options["clock"] = clock
        return DocumentRepository(
            store_client,
            BinIds(main=MAIN_BIN, votes=votes_bin),
            rate_limiter=RateLimiter(0.0),
            max_attempts=max_attempts,
            retry_sleep=no_sleep,
            **options,
        )

    return factory


@pytest.fixture()
def repository(make_repository: Callable[..., DocumentRepository]) -> DocumentRepository:
    return make_repository()


@pytest.fixture()
def make_settings(tmp_path: Path) -> Callable[..., Settings]:
    def factory(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "jsonbin_api_key": API_KEY,
            "jsonbin_bin_id": MAIN_BIN,
            "jsonbin_votes_bin_id": VOTES_BIN,
            "jsonbin_base_url": BASE_URL,
            "backup_dir": tmp_path / "backups",
            "backup_strategy": "local",
            "backup_s3_bucket": None,
            "enable_tracing": False,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return factory


@pytest.fixture()
def s3_client() -> InMemoryS3Client:
    return InMemoryS3Client()


@pytest.fixture()
def client(make_settings: Callable[..., Settings], repository: DocumentRepository) -> Iterator[TestClient]:
    application = create_application(make_settings(), repository=repository)
    with TestClient(application) as test_client:
        yield test_client
