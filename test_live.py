"""Live check: two trackers share a running presence service while /ws/presence reports every change."""

import asyncio
import json
import os

import websockets

from collab_presence.config import settings
from collab_presence.core.pointer import PointerEventHub
from collab_presence.core.tracker import PresenceTracker
from collab_presence.domain.presence import PointerMove, PresenceUser
from collab_presence.store.http_store import HttpEntityStore

BASE_URL = os.getenv("COLLAB_PRESENCE_STORE_BASE_URL", settings.store_base_url)
PROJECT_ID = "p1"
PRESENCE_URI = BASE_URL.replace("http", "ws", 1) + f"/ws/presence/{PROJECT_ID}"


async def presence_listener(ready_event: asyncio.Event):
    """Connect to /ws/presence/{project} and print each change as it arrives."""
    async with websockets.connect(PRESENCE_URI) as ws:
        print(f"[PUSH] Subscribed to {PROJECT_ID}\n")
        ready_event.set()

        while True:
            data = json.loads(await ws.recv())
            record = data.get("record", {})
            print(
                f"[PUSH] {data.get('event'):<8} {record.get('user_email')} "
                f"cursor=({record.get('cursor_x')}, {record.get('cursor_y')}) "
                f"last_active={record.get('last_active')}"
            )


def print_view(name: str):
    def _render(view) -> None:
        if view is None:
            print(f"[{name}] nobody else online")
            return
        print(f"[{name}] {view.heading}")
        for marker in view.markers:
            print(f"    {marker.label} at ({marker.left_pct:.1f}%, {marker.top_pct:.1f}%) {marker.color}")
        if view.overflow_label:
            print(f"    {view.overflow_label}")

    return _render


async def run_scenario():
    """User A moves the pointer, user B watches, then A leaves."""
    async with HttpEntityStore(BASE_URL, timeout=settings.store_timeout_seconds) as store:
        pointer = PointerEventHub()
        alice = PresenceTracker.from_settings(
            store, PROJECT_ID, PresenceUser(email="a@x.com", full_name="Alice"), settings,
            render=print_view("A"),
        )
        bob = PresenceTracker.from_settings(
            store, PROJECT_ID, PresenceUser(email="b@x.com", full_name="Bob"), settings,
            render=print_view("B"),
        )

        await alice.start(pointer)
        await bob.start()
        await alice.initialize()
        await bob.initialize()

        print("\n[A] pointer -> (200px, 100px) in a 1000x2000 viewport\n")
        pointer.emit(PointerMove(client_x=200, client_y=100, viewport_width=1000, document_height=2000))
        await alice.drain()
        await asyncio.sleep(settings.poll_interval_seconds * 1.5)

        print("\n[A] leaving\n")
        await alice.stop()
        await asyncio.sleep(settings.poll_interval_seconds * 1.5)
        await bob.stop()


async def main():
    print(f"Connecting to {PRESENCE_URI} ...")
    ready = asyncio.Event()

    # Start push listener in background
    listener_task = asyncio.create_task(presence_listener(ready))
    await ready.wait()

    await run_scenario()

    await asyncio.sleep(0.5)
    listener_task.cancel()
    print("\nDone!")


if __name__ == "__main__":
    asyncio.run(main())
