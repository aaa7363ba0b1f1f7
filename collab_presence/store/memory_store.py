"""In-memory Presence Entity Store with async-safe access.

Design notes:
    - An asyncio.Lock guards all mutations so concurrent request handlers
      never corrupt state.
    - Records handed out are copies; callers cannot mutate stored state.
    - There is no TTL and no reaper.  Stale records stay until their owner
      overwrites or deletes them; readers hide them by ``last_active``.
    - An optional change listener runs after every successful mutation in
      a background task, so a slow subscriber never delays the writer.
      ``flush()`` waits for deliveries still in flight.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from collab_presence.domain.enums import PresenceEvent
from collab_presence.domain.presence import IMMUTABLE_FIELDS, PresenceRecord
from collab_presence.foundation.clock import utc_now
from collab_presence.foundation.identifiers import new_id
from collab_presence.store.entity_store import EntityNotFoundError, ImmutableFieldError

logger = logging.getLogger(__name__)

ChangeListener = Callable[[PresenceEvent, PresenceRecord], Awaitable[None]]

_KNOWN_FIELDS = frozenset(PresenceRecord.model_fields)


def _check_known(fields: dict[str, Any]) -> None:
    unknown = sorted(set(fields) - _KNOWN_FIELDS)
    if unknown:
        raise ValueError(f"Unknown presence field(s): {', '.join(unknown)}")


class InMemoryEntityStore:
    """Dictionary-backed implementation of the EntityStore protocol."""

    def __init__(self, listener: ChangeListener | None = None) -> None:
        self._lock = asyncio.Lock()
        self._records: dict[str, PresenceRecord] = {}
        self._listener = listener
        self._deliveries: set[asyncio.Task] = set()

    def set_listener(self, listener: ChangeListener | None) -> None:
        self._listener = listener

    # ── EntityStore API ──────────────────────────────────────────────────

    async def filter(self, query: dict[str, Any]) -> list[PresenceRecord]:
        _check_known(query)
        async with self._lock:
            return [
                r.model_copy()
                for r in self._records.values()
                if all(getattr(r, key) == value for key, value in query.items())
            ]

    async def create(self, fields: dict[str, Any]) -> PresenceRecord:
        _check_known(fields)
        now = utc_now()
        data = {"last_active": now, **fields}
        data.update(id=new_id(), created_date=now, updated_date=now)
        record = PresenceRecord.model_validate(data)

        async with self._lock:
            self._records[record.id] = record
        logger.debug(
            "Created presence %s (project=%s, user=%s)",
            record.id, record.project_id, record.user_email,
        )
        self._notify(PresenceEvent.CREATED, record)
        return record.model_copy()

    async def update(self, record_id: str, fields: dict[str, Any]) -> None:
        _check_known(fields)
        async with self._lock:
            existing = self._records.get(record_id)
            if existing is None:
                raise EntityNotFoundError(record_id)

            changed = sorted(
                k for k in IMMUTABLE_FIELDS & set(fields)
                if fields[k] != getattr(existing, k)
            )
            if changed:
                raise ImmutableFieldError(changed)

            data = existing.model_dump()
            data.update(fields)
            data["updated_date"] = utc_now()
            record = PresenceRecord.model_validate(data)
            self._records[record_id] = record
        self._notify(PresenceEvent.UPDATED, record)

    async def delete(self, record_id: str) -> None:
        async with self._lock:
            record = self._records.pop(record_id, None)
        if record is None:
            raise EntityNotFoundError(record_id)
        logger.debug("Deleted presence %s", record_id)
        self._notify(PresenceEvent.DELETED, record)

    # ── Diagnostics ──────────────────────────────────────────────────────

    async def count(self) -> int:
        async with self._lock:
            return len(self._records)

    async def flush(self) -> None:
        """Wait until every change notification issued so far was delivered."""
        if self._deliveries:
            await asyncio.gather(*list(self._deliveries), return_exceptions=True)

    # ── Internals ────────────────────────────────────────────────────────

    def _notify(self, event: PresenceEvent, record: PresenceRecord) -> None:
        if self._listener is None:
            return
        task = asyncio.create_task(self._deliver(self._listener, event, record.model_copy()))
        self._deliveries.add(task)
        task.add_done_callback(self._deliveries.discard)

    async def _deliver(
        self, listener: ChangeListener, event: PresenceEvent, record: PresenceRecord
    ) -> None:
        try:
            await listener(event, record)
        except Exception as exc:
            logger.error("Presence change listener failed: %s", exc, exc_info=True)
