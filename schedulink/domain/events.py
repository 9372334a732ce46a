"""Broadcast messages pushed to live listeners."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Broadcast(BaseModel):
    """Invalidation hint for live clients; not an authoritative payload."""

    type: str
    message: str
    event_id: str | None = None
    sent_at: datetime = Field(default_factory=_utcnow)


class EventApproved(Broadcast):
    """Fired after an event's approval has been committed."""

    type: Literal["event_approved"] = "event_approved"
    message: str = "New event added! Check the calendar for new events."


class EventConflictAlert(Broadcast):
    """Fired for a pending event that now overlaps a just-approved one."""

    type: Literal["event_conflict"] = "event_conflict"
