"""HTTP client implementation of the EntityStore protocol.

Talks to the presence service's ``/entities/presence`` collection.  Each
call is a single request: no retries, no caching.  Timeouts are whatever
the underlying ``httpx.AsyncClient`` enforces.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from collab_presence.domain.presence import PresenceRecord
from collab_presence.models.presence import PresenceCreate, PresenceUpdate
from collab_presence.store.entity_store import EntityNotFoundError, ImmutableFieldError

logger = logging.getLogger(__name__)

COLLECTION_PATH = "/entities/presence"


class HttpEntityStore:
    """Remote Presence collection accessed over REST.

    Args:
        base_url: Root URL of the presence service.
        timeout: Per-request timeout in seconds.
        client: Optional pre-built ``httpx.AsyncClient`` (e.g. bound to an
            ASGI transport in tests).  The store only closes clients it
            created itself.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def __aenter__(self) -> "HttpEntityStore":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ── EntityStore API ──────────────────────────────────────────────────

    async def filter(self, query: dict[str, Any]) -> list[PresenceRecord]:
        resp = await self._client.get(COLLECTION_PATH, params=query)
        resp.raise_for_status()
        return [PresenceRecord.model_validate(item) for item in resp.json()]

    async def create(self, fields: dict[str, Any]) -> PresenceRecord:
        body = PresenceCreate.model_validate(fields).model_dump(mode="json", exclude_unset=True)
        resp = await self._client.post(COLLECTION_PATH, json=body)
        resp.raise_for_status()
        return PresenceRecord.model_validate(resp.json())

    async def update(self, record_id: str, fields: dict[str, Any]) -> None:
        body = PresenceUpdate.model_validate(fields).model_dump(mode="json", exclude_unset=True)
        resp = await self._client.patch(f"{COLLECTION_PATH}/{record_id}", json=body)
        self._raise_for_store_error(resp, record_id)

    async def delete(self, record_id: str) -> None:
        resp = await self._client.delete(f"{COLLECTION_PATH}/{record_id}")
        self._raise_for_store_error(resp, record_id)

    # ── Internals ────────────────────────────────────────────────────────

    @staticmethod
    def _raise_for_store_error(resp: httpx.Response, record_id: str) -> None:
        if resp.status_code == 404:
            raise EntityNotFoundError(record_id)
        if resp.status_code == 409:
            detail = resp.json().get("detail", {})
            fields = detail.get("fields", []) if isinstance(detail, dict) else []
            raise ImmutableFieldError(fields)
        resp.raise_for_status()
