"""PresenceTracker: "who else is looking at this project, and where".

One tracker instance represents one mounted view of one project by one
user.  While mounted it runs three independent activities on the event
loop:

    pointer moves  →  leading-edge throttle (500 ms)  →  cursor write
    heartbeat loop (5 s)                              →  last_active write
    roster loop    (immediately, then every 2 s)      →  filter + replace roster

Design notes:
    - Presence is cosmetic.  Every Entity Store call is wrapped on its own;
      failures are logged and never raised to the caller, never retried,
      and never stop a loop.
    - All writes are gated on the record id produced by initialization.
      Nothing is locked; there is exactly one initialization in flight
      per instance.
    - ``stop()`` flips the mounted flag first.  Every coroutine re-checks it
      after each await before touching state or issuing another write.
    - Cross-client races (two tabs, same user) are not coordinated.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Coroutine, Optional

from collab_presence.config import Settings
from collab_presence.core.pointer import PointerEventSource, Unsubscribe
from collab_presence.core.throttle import LeadingEdgeThrottle
from collab_presence.domain.enums import TrackerState
from collab_presence.domain.presence import (
    DEFAULT_CURSOR,
    DEFAULT_SECTION,
    STALENESS_WINDOW,
    PointerMove,
    PresenceRecord,
    PresenceUser,
    active_roster,
    assign_color,
    cursor_percent,
)
from collab_presence.domain.roster import DISPLAY_LIMIT, RosterView, build_roster_view
from collab_presence.foundation.clock import utc_now
from collab_presence.store.entity_store import EntityStore

logger = logging.getLogger(__name__)

RenderCallback = Callable[[Optional[RosterView]], None]


class PresenceTracker:
    """Maintains the local user's presence record and the project roster.

    Args:
        store: Entity Store holding Presence records.
        project_id: The shared context being observed.
        user: The signed-in user; ``None`` makes the tracker inert.
        throttle_interval: Minimum gap between accepted cursor writes.
        heartbeat_interval: Seconds between liveness refreshes.
        poll_interval: Seconds between roster polls.
        staleness_window: Records older than this are treated as offline.
        display_limit: How many roster entries the panel lists by name.
        render: Optional callback invoked with the new view after every
            roster replacement.
    """

    def __init__(
        self,
        store: EntityStore,
        project_id: str | None,
        user: PresenceUser | None,
        *,
        throttle_interval: timedelta = timedelta(milliseconds=500),
        heartbeat_interval: float = 5.0,
        poll_interval: float = 2.0,
        staleness_window: timedelta = STALENESS_WINDOW,
        display_limit: int = DISPLAY_LIMIT,
        render: RenderCallback | None = None,
    ) -> None:
        self._store = store
        self._project_id = project_id
        self._user = user
        self._heartbeat_interval = heartbeat_interval
        self._poll_interval = poll_interval
        self._staleness_window = staleness_window
        self._display_limit = display_limit
        self._render = render

        self._throttle = LeadingEdgeThrottle(throttle_interval)
        self._color: str | None = assign_color(user.email) if user and user.email else None
        self._presence_id: str | None = None
        self._roster: list[PresenceRecord] = []
        self._state = TrackerState.IDLE
        self._mounted = False

        self._init_task: asyncio.Task | None = None
        self._heartbeat_task: asyncio.Task | None = None
        self._poll_task: asyncio.Task | None = None
        self._unsubscribe: Unsubscribe | None = None
        self._pending_writes: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls,
        store: EntityStore,
        project_id: str | None,
        user: PresenceUser | None,
        settings: Settings,
        render: RenderCallback | None = None,
    ) -> "PresenceTracker":
        """Build a tracker with timings taken from application settings."""
        return cls(
            store,
            project_id,
            user,
            throttle_interval=timedelta(milliseconds=settings.cursor_throttle_ms),
            heartbeat_interval=settings.heartbeat_interval_seconds,
            poll_interval=settings.poll_interval_seconds,
            staleness_window=timedelta(seconds=settings.staleness_seconds),
            display_limit=settings.roster_display_limit,
            render=render,
        )

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def state(self) -> TrackerState:
        return self._state

    @property
    def is_mounted(self) -> bool:
        return self._mounted

    @property
    def project_id(self) -> str | None:
        return self._project_id

    @property
    def user(self) -> PresenceUser | None:
        return self._user

    @property
    def color(self) -> str | None:
        return self._color

    @property
    def presence_id(self) -> str | None:
        return self._presence_id

    @property
    def roster(self) -> list[PresenceRecord]:
        return list(self._roster)

    def view(self) -> RosterView | None:
        """Current overlay view; None means render nothing."""
        return build_roster_view(self._roster, self._display_limit)

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def start(self, pointer_events: PointerEventSource | None = None) -> None:
        """Mount the tracker: initialize, subscribe, and start both loops.

        Returns as soon as the background work is scheduled.  Without a
        project id or user the tracker stays inert and touches nothing.
        """
        if self._state is not TrackerState.IDLE:
            return
        if not self._project_id or self._user is None or self._color is None:
            self._state = TrackerState.INERT
            logger.debug("Presence tracker inert (project=%r, user=%r)", self._project_id, self._user)
            return

        self._mounted = True
        self._state = TrackerState.MOUNTED

        if pointer_events is not None:
            self._unsubscribe = pointer_events.subscribe(self.on_pointer_move)

        self._init_task = asyncio.create_task(self._initialize())
        self._poll_task = asyncio.create_task(self._poll_loop())
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())
        logger.info(
            "Presence tracker mounted (project=%s, user=%s, color=%s)",
            self._project_id, self._user.email, self._color,
        )

    async def stop(self) -> None:
        """Unmount: stop both loops and the subscription, then delete our record."""
        if self._state is not TrackerState.MOUNTED:
            if self._state is TrackerState.IDLE:
                self._state = TrackerState.UNMOUNTED
            return

        self._mounted = False
        self._state = TrackerState.UNMOUNTED

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        tasks = [t for t in (self._init_task, self._poll_task, self._heartbeat_task) if t is not None]
        tasks.extend(self._pending_writes)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._init_task = self._poll_task = self._heartbeat_task = None

        record_id = self._presence_id
        if record_id is None:
            logger.debug("Presence tracker unmounted before initialization; nothing to delete")
            return
        try:
            await self._store.delete(record_id)
            logger.info("Presence %s removed on unmount", record_id)
        except Exception as exc:
            logger.warning("Failed to clean up presence %s: %s", record_id, exc)

    async def __aenter__(self) -> "PresenceTracker":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    # ── Initialization ───────────────────────────────────────────────────

    async def initialize(self) -> str | None:
        """Ensure our presence record exists; return its id (or None on failure).

        Once an id is known this is a no-op that returns it.  Concurrent
        callers share the one initialization in flight.
        """
        if self._presence_id is not None:
            return self._presence_id
        if not self._mounted:
            return None
        if self._init_task is None or self._init_task.done():
            self._init_task = asyncio.create_task(self._initialize())
        return await asyncio.shield(self._init_task)

    async def _initialize(self) -> str | None:
        project_id, user, color = self._project_id, self._user, self._color
        try:
            existing = await self._store.filter(
                {"project_id": project_id, "user_email": user.email}
            )
            if not self._mounted:
                return None

            now = utc_now()
            if existing:
                record_id = existing[0].id
                self._presence_id = record_id
                await self._store.update(record_id, {
                    "user_name": user.display_name,
                    "user_avatar": user.profile_image,
                    "last_active": now,
                    "color": color,
                })
                logger.info("Reusing presence %s for %s in %s", record_id, user.email, project_id)
            else:
                created = await self._store.create({
                    "project_id": project_id,
                    "user_email": user.email,
                    "user_name": user.display_name,
                    "user_avatar": user.profile_image,
                    "cursor_x": DEFAULT_CURSOR,
                    "cursor_y": DEFAULT_CURSOR,
                    "viewing_section": DEFAULT_SECTION,
                    "last_active": now,
                    "color": color,
                })
                if not self._mounted:
                    logger.warning(
                        "Presence %s created after unmount; left to age out", created.id
                    )
                    return None
                self._presence_id = created.id
                logger.info("Created presence %s for %s in %s", created.id, user.email, project_id)
            return self._presence_id
        except Exception as exc:
            logger.error("Failed to initialize presence for %s in %s: %s", user.email, project_id, exc)
            return self._presence_id

    async def refresh_profile(self, user: PresenceUser) -> bool:
        """Re-write display metadata after the user's profile changed.

        Raises:
            ValueError: If *user* is a different participant.
        """
        if self._user is None or user.email != self._user.email:
            raise ValueError("refresh_profile cannot change the tracked user")
        self._user = user

        record_id = self._presence_id
        if record_id is None or not self._mounted:
            return False
        try:
            await self._store.update(record_id, {
                "user_name": user.display_name,
                "user_avatar": user.profile_image,
                "last_active": utc_now(),
                "color": self._color,
            })
            return True
        except Exception as exc:
            logger.warning("Failed to refresh presence profile %s: %s", record_id, exc)
            return False

    # ── Cursor broadcast ─────────────────────────────────────────────────

    def on_pointer_move(self, event: PointerMove) -> bool:
        """Handle one pointer move; return True if a cursor write was issued.

        The throttle window opens on the first accepted event even while the
        record id is still unknown; that event is simply not written.
        """
        if not self._mounted:
            return False

        now = utc_now()
        if not self._throttle.try_acquire(now):
            return False

        record_id = self._presence_id
        if record_id is None:
            return False

        x, y = cursor_percent(event)
        self._fire_and_forget(self._write_cursor(record_id, x, y, now))
        return True

    async def _write_cursor(self, record_id: str, x: float, y: float, at: datetime) -> None:
        if not self._mounted:
            return
        try:
            await self._store.update(record_id, {"cursor_x": x, "cursor_y": y, "last_active": at})
        except Exception as exc:
            logger.warning("Failed to update cursor for presence %s: %s", record_id, exc)

    def _fire_and_forget(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def drain(self) -> None:
        """Wait for every cursor write issued so far to settle."""
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    # ── Heartbeat ────────────────────────────────────────────────────────

    async def send_heartbeat(self) -> bool:
        record_id = self._presence_id
        if record_id is None or not self._mounted:
            return False
        try:
            await self._store.update(record_id, {"last_active": utc_now()})
            return True
        except Exception as exc:
            logger.warning("Failed to send heartbeat for presence %s: %s", record_id, exc)
            return False

    async def _heartbeat_loop(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self._heartbeat_interval
        while self._mounted:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            next_tick += self._heartbeat_interval
            await self.send_heartbeat()

    # ── Roster polling ───────────────────────────────────────────────────

    async def poll_roster(self) -> bool:
        """Fetch the project's records and replace the roster in full.

        Returns False (roster untouched) on failure or if the tracker was
        unmounted while the query was in flight.
        """
        if not self._mounted:
            return False
        try:
            records = await self._store.filter({"project_id": self._project_id})
        except Exception as exc:
            logger.warning("Failed to fetch active users for %s: %s", self._project_id, exc)
            return False

        if not self._mounted:
            return False

        self._roster = active_roster(
            records, self._user.email, utc_now(), self._staleness_window
        )
        self._emit_render()
        return True

    async def _poll_loop(self) -> None:
        # Ticks sit on a fixed grid from mount time; a slow poll shortens the
        # following sleep instead of stretching the period.
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while self._mounted:
            await self.poll_roster()
            next_tick += self._poll_interval
            await asyncio.sleep(max(0.0, next_tick - loop.time()))

    def _emit_render(self) -> None:
        if self._render is None:
            return
        try:
            self._render(self.view())
        except Exception as exc:
            logger.warning("Presence render callback failed: %s", exc)
