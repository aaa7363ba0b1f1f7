"""Opaque ID generation for stored entities."""

from __future__ import annotations

from uuid import uuid4


def new_id() -> str:
    """Generate a new opaque record identifier (hex UUID v4)."""
    return uuid4().hex
