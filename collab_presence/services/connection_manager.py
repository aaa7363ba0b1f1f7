"""Manages WebSocket subscribers to per-project presence changes."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import WebSocket

from collab_presence.domain.enums import PresenceEvent
from collab_presence.domain.presence import PresenceRecord

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks subscribers per project and fans presence changes out to them."""

    def __init__(self) -> None:
        self._connections: dict[str, set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, project_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._connections.setdefault(project_id, set()).add(websocket)
        logger.info("Presence subscriber connected to %s (%d total)", project_id, self.active_count)

    async def disconnect(self, project_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            subscribers = self._connections.get(project_id)
            if subscribers is not None:
                subscribers.discard(websocket)
                if not subscribers:
                    del self._connections[project_id]
        logger.info("Presence subscriber left %s (%d remaining)", project_id, self.active_count)

    @property
    def active_count(self) -> int:
        return sum(len(s) for s in self._connections.values())

    async def on_change(self, event: PresenceEvent, record: PresenceRecord) -> None:
        """Store listener: push one change to the record's project subscribers."""
        await self.broadcast_json(record.project_id, {
            "event": event.value,
            "record": record.model_dump(mode="json"),
        })

    async def broadcast_json(self, project_id: str, data: dict[str, Any]) -> None:
        """Send a JSON payload to every subscriber of *project_id*."""
        async with self._lock:
            subscribers = set(self._connections.get(project_id, ()))
        if not subscribers:
            return

        message = json.dumps(data, default=str)
        dead: set[WebSocket] = set()
        for ws in subscribers:
            try:
                await ws.send_text(message)
            except Exception:
                dead.add(ws)

        if dead:
            async with self._lock:
                remaining = self._connections.get(project_id)
                if remaining is not None:
                    remaining -= dead
                    if not remaining:
                        del self._connections[project_id]
            logger.info("Removed %d dead presence subscriber(s)", len(dead))
