"""RosterView: what the presence overlay shows for the current roster.

The view is a plain data structure: one cursor marker per active
collaborator plus the "N Collaborators Online" panel.  An empty roster
produces no view at all, so callers render nothing.
"""

from __future__ import annotations

from typing import Optional, Sequence

from pydantic import BaseModel, Field

from collab_presence.domain.presence import DEFAULT_COLOR, DEFAULT_CURSOR, PresenceRecord

DISPLAY_LIMIT = 5


class CursorMarker(BaseModel):
    """A positioned, colored label at the collaborator's last pointer position."""

    record_id: str
    left_pct: float
    top_pct: float
    color: str
    label: Optional[str] = None

    model_config = {"frozen": True}


class RosterEntry(BaseModel):
    record_id: str
    name: Optional[str] = None
    avatar: Optional[str] = None
    initial: str = "U"
    color: str

    model_config = {"frozen": True}


class RosterView(BaseModel):
    """Immutable snapshot of everything the overlay renders."""

    markers: list[CursorMarker] = Field(default_factory=list)
    count: int
    heading: str
    visible: list[RosterEntry] = Field(default_factory=list)
    overflow: int = 0

    model_config = {"frozen": True}

    @property
    def overflow_label(self) -> str | None:
        if self.overflow <= 0:
            return None
        return f"+{self.overflow} more"


def _marker(record: PresenceRecord) -> CursorMarker:
    return CursorMarker(
        record_id=record.id,
        left_pct=DEFAULT_CURSOR if record.cursor_x is None else record.cursor_x,
        top_pct=DEFAULT_CURSOR if record.cursor_y is None else record.cursor_y,
        color=record.color or DEFAULT_COLOR,
        label=record.user_name,
    )


def _entry(record: PresenceRecord) -> RosterEntry:
    return RosterEntry(
        record_id=record.id,
        name=record.user_name,
        avatar=record.user_avatar,
        initial=record.user_name[0] if record.user_name else "U",
        color=record.color or DEFAULT_COLOR,
    )


def heading_for(count: int) -> str:
    noun = "Collaborator" if count == 1 else "Collaborators"
    return f"{count} {noun} Online"


def build_roster_view(
    roster: Sequence[PresenceRecord],
    display_limit: int = DISPLAY_LIMIT,
) -> RosterView | None:
    """Build the overlay view, or None when nobody else is online."""
    if not roster:
        return None

    count = len(roster)
    return RosterView(
        markers=[_marker(r) for r in roster],
        count=count,
        heading=heading_for(count),
        visible=[_entry(r) for r in roster[:display_limit]],
        overflow=max(count - display_limit, 0),
    )
