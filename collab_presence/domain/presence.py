"""Presence records and the pure rules that operate on them.

A PresenceRecord is an ephemeral "this user is looking at this project"
document.  It lives in the external Entity Store and is refreshed by the
owning client's heartbeat and cursor writes.  Readers decide liveness
purely from ``last_active``; nothing here deletes or expires records.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Optional

from pydantic import BaseModel, Field, field_validator

from collab_presence.foundation.clock import ensure_utc

# ── Constants ────────────────────────────────────────────────────────────────

PALETTE: tuple[str, ...] = (
    "#8B5CF6",  # purple
    "#EC4899",  # pink
    "#F59E0B",  # amber
    "#10B981",  # green
    "#3B82F6",  # blue
    "#EF4444",  # red
    "#14B8A6",  # teal
    "#F97316",  # orange
)

DEFAULT_COLOR = PALETTE[0]
DEFAULT_CURSOR = 50.0
DEFAULT_SECTION = "overview"
STALENESS_WINDOW = timedelta(seconds=10)

# Fields that identify a record and may never change after creation.
IMMUTABLE_FIELDS = frozenset({"id", "project_id", "user_email"})


# ── Current user ─────────────────────────────────────────────────────────────

class PresenceUser(BaseModel):
    """The minimal view of the signed-in user the tracker needs."""

    email: str = Field(..., min_length=1)
    full_name: Optional[str] = None
    profile_image: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def display_name(self) -> str:
        return self.full_name or self.email


# ── Presence record ──────────────────────────────────────────────────────────

class PresenceRecord(BaseModel):
    """One participant's presence in one project."""

    id: str = Field(..., min_length=1, description="Opaque id assigned by the Entity Store")
    project_id: str = Field(..., min_length=1)
    user_email: str = Field(..., min_length=1)
    user_name: Optional[str] = None
    user_avatar: Optional[str] = None
    cursor_x: Optional[float] = DEFAULT_CURSOR
    cursor_y: Optional[float] = DEFAULT_CURSOR
    viewing_section: Optional[str] = DEFAULT_SECTION
    color: Optional[str] = None
    last_active: datetime
    created_date: Optional[datetime] = None
    updated_date: Optional[datetime] = None

    @field_validator("last_active", "created_date", "updated_date")
    @classmethod
    def timestamps_are_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is None:
            return v
        return ensure_utc(v)

    def age(self, now: datetime) -> timedelta:
        return now - self.last_active

    def is_active(self, now: datetime, window: timedelta = STALENESS_WINDOW) -> bool:
        """True while the last heartbeat/cursor write is strictly inside *window*."""
        return self.age(now) < window


# ── Pointer input ────────────────────────────────────────────────────────────

class PointerMove(BaseModel):
    """A pointer-move sample together with the viewport geometry it was taken in."""

    client_x: float
    client_y: float
    viewport_width: float = Field(..., gt=0)
    document_height: float = Field(..., gt=0)
    scroll_y: float = 0.0

    model_config = {"frozen": True}


def cursor_percent(event: PointerMove) -> tuple[float, float]:
    """Convert a pointer sample to viewport/document percentages.

    Values are deliberately not clamped to 0–100.
    """
    x = (event.client_x / event.viewport_width) * 100
    y = ((event.client_y + event.scroll_y) / event.document_height) * 100
    return x, y


# ── Rules ────────────────────────────────────────────────────────────────────

def assign_color(email: str) -> str:
    """Pick a display color from the first character's code point.

    Only the first character participates, so every email starting with
    the same letter shares a color.
    """
    if not email:
        raise ValueError("email must be non-empty to assign a color")
    return PALETTE[ord(email[0]) % len(PALETTE)]


def active_roster(
    records: Iterable[PresenceRecord],
    self_email: str | None,
    now: datetime,
    window: timedelta = STALENESS_WINDOW,
) -> list[PresenceRecord]:
    """Drop the caller's own record and every stale record, keeping order."""
    return [
        r for r in records
        if r.user_email != self_email and r.is_active(now, window)
    ]
