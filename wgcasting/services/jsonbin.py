"""Async HTTP client for the JSONBin-style document store."""
from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Master-Key"


class StoreError(RuntimeError):
    """Base class for document store failures."""


class StoreConfigurationError(StoreError):
    """Raised when the API key or a bin id is missing."""


class RateLimitedError(StoreError):
    """Raised when the store answers with HTTP 429."""


class BinNotFoundError(StoreError):
    """Raised when the requested bin does not exist."""


class StoreRequestError(StoreError):
    """Raised for any other non-success response or transport failure."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DocumentDecodeError(StoreError):
    """Raised when a stored record does not have the expected JSON shape."""


class JsonBinClient:
    """Thin async wrapper around the bin GET/PUT/POST endpoints."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = 10.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._client = client or httpx.AsyncClient()
        self._owns_client = client is None
        self._timeout = timeout

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "JsonBinClient":  # pragma: no cover - convenience
        return self

    async def __aexit__(self, *_args: object) -> None:  # pragma: no cover - convenience
        await self.aclose()

    def _headers(self, *, json_body: bool = False) -> dict[str, str]:
        if not self._api_key:
            raise StoreConfigurationError("JSONBin API key not configured. Set JSONBIN_API_KEY.")
        headers = {API_KEY_HEADER: self._api_key}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    @staticmethod
    def _require_bin_id(bin_id: str | None) -> str:
        if not bin_id:
            raise StoreConfigurationError("JSONBin bin id not configured.")
        return bin_id

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(
                method, f"{self._base_url}{path}", timeout=self._timeout, **kwargs
            )
        except httpx.HTTPError as exc:
            raise StoreRequestError(f"{method} {path} failed: {exc.__class__.__name__}") from exc

        if response.status_code == 429:
            raise RateLimitedError(f"{method} {path} was rate limited")
        if response.status_code == 404:
            raise BinNotFoundError(f"{method} {path} returned 404")
        if response.is_error:
            raise StoreRequestError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise DocumentDecodeError("Store returned a non-JSON body") from exc
        if not isinstance(payload, dict):
            raise DocumentDecodeError("Store returned an unexpected envelope")
        return payload

    async def fetch_envelope(self, bin_id: str | None) -> dict[str, Any]:
        """Return the full ``{record, metadata}`` envelope of a bin."""

        bin_id = self._require_bin_id(bin_id)
        response = await self._send("GET", f"/b/{bin_id}", headers=self._headers())
        return self._json(response)

    async def fetch(self, bin_id: str | None) -> Any:
        """Return the stored record of a bin (``None`` when the store has none)."""

        envelope = await self.fetch_envelope(bin_id)
        return envelope.get("record")

    async def replace(self, bin_id: str | None, record: dict[str, Any]) -> Any:
        """Overwrite the whole document and return the written record."""

        bin_id = self._require_bin_id(bin_id)
        response = await self._send(
            "PUT", f"/b/{bin_id}", json=record, headers=self._headers(json_body=True)
        )
        return self._json(response).get("record", record)

    async def create(self, record: dict[str, Any]) -> str:
        """Create a new bin holding ``record`` and return its id."""

        response = await self._send("POST", "/b", json=record, headers=self._headers(json_body=True))
        metadata = self._json(response).get("metadata") or {}
        new_id = metadata.get("id")
        if not new_id:
            raise DocumentDecodeError("Store did not return an id for the created bin")
        return str(new_id)


__all__ = [
    "API_KEY_HEADER",
    "BinNotFoundError",
    "DocumentDecodeError",
    "JsonBinClient",
    "RateLimitedError",
    "StoreConfigurationError",
    "StoreError",
    "StoreRequestError",
]
