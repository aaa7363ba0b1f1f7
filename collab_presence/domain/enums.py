"""Controlled enumerations for the collab-presence domain."""

from __future__ import annotations

from enum import Enum


class PresenceEvent(str, Enum):
    """Kinds of change pushed to presence subscribers."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class TrackerState(str, Enum):
    """Lifecycle of a single mounted PresenceTracker."""

    IDLE = "idle"
    INERT = "inert"
    MOUNTED = "mounted"
    UNMOUNTED = "unmounted"
