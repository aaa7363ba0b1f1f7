"""Presence push channel: change notifications per project.

Path: /ws/presence/{project_id}

Subscribers receive ``{"event": "created"|"updated"|"deleted", "record": {...}}``
for every mutation of a record in that project.  Trackers do not depend
on this channel; it exists for consumers that prefer push to polling.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from collab_presence.services.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)


def create_presence_ws_router(manager: ConnectionManager) -> APIRouter:
    """Factory that creates the presence WebSocket endpoint."""

    router = APIRouter()

    @router.websocket("/ws/presence/{project_id}")
    async def presence_ws(websocket: WebSocket, project_id: str) -> None:
        await manager.connect(project_id, websocket)
        try:
            # Subscribers only listen; answer pings to keep proxies happy
            while True:
                data = await websocket.receive_text()
                if data.strip().lower() == "ping":
                    await websocket.send_text("pong")
        except WebSocketDisconnect:
            await manager.disconnect(project_id, websocket)

    return router
