"""collab-presence: Presence Entity Store service.

This is the application entry point.  It wires the in-memory Presence
store, the push-channel ConnectionManager, and the HTTP/WebSocket routes
together.  Browser-side trackers talk to it through HttpEntityStore.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import FastAPI

from collab_presence.api.entities import create_entities_router
from collab_presence.api.roster import create_roster_router
from collab_presence.api.ws_presence import create_presence_ws_router
from collab_presence.config import settings
from collab_presence.services.connection_manager import ConnectionManager
from collab_presence.store.memory_store import InMemoryEntityStore

# ── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)


def create_app(store: InMemoryEntityStore | None = None) -> FastAPI:
    """Build the service around *store* (a fresh in-memory store by default)."""

    # ── State ────────────────────────────────────────────────────────────
    store = store or InMemoryEntityStore()
    manager = ConnectionManager()
    store.set_listener(manager.on_change)

    # ── App ──────────────────────────────────────────────────────────────
    app = FastAPI(
        title=settings.app_name,
        description="Ephemeral project presence: records, roster and change push",
        version="0.1.0",
        debug=settings.debug,
    )

    # ── Routes ───────────────────────────────────────────────────────────
    app.include_router(create_entities_router(store))
    app.include_router(create_roster_router(
        store,
        staleness_window=timedelta(seconds=settings.staleness_seconds),
    ))
    app.include_router(create_presence_ws_router(manager))

    # ── Health ───────────────────────────────────────────────────────────
    @app.get("/health")
    async def health() -> dict:
        return {
            "status": "ok",
            "presence_records": await store.count(),
            "push_subscribers": manager.active_count,
        }

    return app


app = create_app()
