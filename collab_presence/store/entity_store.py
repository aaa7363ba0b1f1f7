"""The Entity Store contract for the ``Presence`` record collection.

Trackers and API routes depend on this protocol only; swap the
in-memory store for the HTTP client without touching presence logic.
"""

from __future__ import annotations

from typing import Any, Protocol

from collab_presence.domain.presence import PresenceRecord


class EntityStoreError(Exception):
    """Base class for Entity Store failures."""


class EntityNotFoundError(EntityStoreError):
    """Raised when a record id does not exist (or no longer exists)."""

    def __init__(self, record_id: str) -> None:
        self.record_id = record_id
        super().__init__(f"Presence record '{record_id}' not found")


class ImmutableFieldError(EntityStoreError):
    """Raised when an update tries to change an identifying field."""

    def __init__(self, fields: list[str]) -> None:
        self.fields = fields
        super().__init__(f"Immutable field(s) cannot be updated: {', '.join(fields)}")


class EntityStore(Protocol):
    """Generic CRUD/query operations over Presence records."""

    async def filter(self, query: dict[str, Any]) -> list[PresenceRecord]:
        """Return every record whose fields equal all values in *query*."""
        ...

    async def create(self, fields: dict[str, Any]) -> PresenceRecord:
        """Create a record and return it with its store-assigned id."""
        ...

    async def update(self, record_id: str, fields: dict[str, Any]) -> None:
        """Partially update the record identified by *record_id*."""
        ...

    async def delete(self, record_id: str) -> None:
        """Remove the record identified by *record_id*."""
        ...
