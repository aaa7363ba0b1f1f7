"""Pydantic wire schemas for the presence REST collection."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from collab_presence.domain.presence import PresenceRecord


class PresenceCreate(BaseModel):
    """Body of ``POST /entities/presence``."""

    project_id: str = Field(..., min_length=1)
    user_email: str = Field(..., min_length=1)
    user_name: Optional[str] = None
    user_avatar: Optional[str] = None
    cursor_x: Optional[float] = None
    cursor_y: Optional[float] = None
    viewing_section: Optional[str] = None
    color: Optional[str] = None
    last_active: Optional[datetime] = None

    model_config = {"extra": "forbid"}


class PresenceUpdate(BaseModel):
    """Body of ``PATCH /entities/presence/{id}``; only the set fields are applied."""

    project_id: Optional[str] = None
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    user_avatar: Optional[str] = None
    cursor_x: Optional[float] = None
    cursor_y: Optional[float] = None
    viewing_section: Optional[str] = None
    color: Optional[str] = None
    last_active: Optional[datetime] = None

    model_config = {"extra": "forbid"}


class RosterResponse(BaseModel):
    """Active participants of a project as seen by one reader."""

    project_id: str
    count: int
    users: list[PresenceRecord] = Field(default_factory=list)
