"""Read-only roster endpoint.

Path: GET /api/projects/{project_id}/roster?exclude=<email>

Applies the same staleness rule the trackers use, so dashboards and
server-side consumers see the roster a client would see.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

from fastapi import APIRouter

from collab_presence.domain.presence import STALENESS_WINDOW, active_roster
from collab_presence.foundation.clock import utc_now
from collab_presence.models.presence import RosterResponse
from collab_presence.store.entity_store import EntityStore


def create_roster_router(
    store: EntityStore,
    staleness_window: timedelta = STALENESS_WINDOW,
) -> APIRouter:
    router = APIRouter(prefix="/api", tags=["roster"])

    @router.get("/projects/{project_id}/roster", response_model=RosterResponse)
    async def project_roster(project_id: str, exclude: Optional[str] = None) -> RosterResponse:
        records = await store.filter({"project_id": project_id})
        users = active_roster(records, exclude, utc_now(), staleness_window)
        return RosterResponse(project_id=project_id, count=len(users), users=users)

    return router
