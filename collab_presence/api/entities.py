"""REST collection for Presence records.

Paths:
    GET    /entities/presence           filter by equality on query params
    POST   /entities/presence           create
    PATCH  /entities/presence/{id}      partial update
    DELETE /entities/presence/{id}      delete

This is the Entity Store boundary the trackers talk to through
HttpEntityStore.  No presence rules live here.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import ValidationError

from collab_presence.domain.presence import PresenceRecord
from collab_presence.models.presence import PresenceCreate, PresenceUpdate
from collab_presence.store.entity_store import EntityNotFoundError, EntityStore, ImmutableFieldError

logger = logging.getLogger(__name__)


def create_entities_router(store: EntityStore) -> APIRouter:
    """Factory that wires the presence collection to a concrete EntityStore."""

    router = APIRouter(prefix="/entities/presence", tags=["presence"])

    @router.get("", response_model=list[PresenceRecord])
    async def filter_presence(
        project_id: Optional[str] = None,
        user_email: Optional[str] = None,
    ) -> list[PresenceRecord]:
        query: dict[str, Any] = {}
        if project_id is not None:
            query["project_id"] = project_id
        if user_email is not None:
            query["user_email"] = user_email
        return await store.filter(query)

    @router.post("", response_model=PresenceRecord, status_code=status.HTTP_201_CREATED)
    async def create_presence(payload: PresenceCreate) -> PresenceRecord:
        try:
            return await store.create(payload.model_dump(exclude_unset=True))
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

    @router.patch("/{record_id}")
    async def update_presence(record_id: str, payload: PresenceUpdate) -> dict[str, str]:
        try:
            await store.update(record_id, payload.model_dump(exclude_unset=True))
        except EntityNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ImmutableFieldError as exc:
            raise HTTPException(
                status_code=409,
                detail={"message": str(exc), "fields": exc.fields},
            ) from exc
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return {"status": "updated", "id": record_id}

    @router.delete("/{record_id}")
    async def delete_presence(record_id: str) -> dict[str, str]:
        try:
            await store.delete(record_id)
        except EntityNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return {"status": "deleted", "id": record_id}

    return router
