"""Domain models for the scheduling administration backend."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timezone
from enum import StrEnum
from typing import Any

from dateutil.parser import isoparse
from pydantic import BaseModel, Field, field_validator


class EventStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"


class NotificationType(StrEnum):
    EVENT_APPROVAL = "event_approval"
    EVENT_APPROVED = "event_approved"
    EVENT_CONFLICT = "event_conflict"
    RESOURCE_BOOKING = "resource_booking"


class NotificationStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"
    UNREAD = "unread"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _coerce_date(value: Any) -> Any:
    """Accept ISO dates and ISO datetimes; the time component is dropped."""
    value = _blank_to_none(value)
    if isinstance(value, str):
        return isoparse(value.strip()).date()
    if isinstance(value, datetime):
        return value.date()
    return value


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class ScheduleWindow(BaseModel):
    """The part of an event the conflict detector looks at."""

    start_date: date
    end_date: date | None = None
    venue_ids: list[str] = Field(default_factory=list)
    event_start_time: time | None = None
    event_end_time: time | None = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _parse_dates(cls, value: Any) -> Any:
        return _coerce_date(value)

    @field_validator("event_start_time", "event_end_time", mode="before")
    @classmethod
    def _blank_times(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("venue_ids", mode="before")
    @classmethod
    def _stringify_venue_ids(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple, set)):
            return [str(v) for v in value]
        return value

    @property
    def last_date(self) -> date:
        """Inclusive last day; single-day events end on their start date."""
        return self.end_date or self.start_date


class EventPayload(ScheduleWindow):
    """Fields a submitter provides when creating or updating an event."""

    name: str
    description: str = ""
    equipment: list[str] = Field(default_factory=list)
    application_date: date | None = None
    rental_date: date | None = None
    behalf_of: str = ""
    contact_info: str = ""
    nature_of_event: str = ""
    requires_equipment: bool = False
    chairs_qty: int = Field(default=0, ge=0)
    tables_qty: int = Field(default=0, ge=0)
    projector: bool = False
    other_equipment: str = ""
    setup_start_time: time | None = None
    setup_end_time: time | None = None
    setup_hours: float = 0
    event_hours: float = 0
    cleanup_start_time: time | None = None
    cleanup_end_time: time | None = None
    cleanup_hours: float = 0
    total_hours: float = 0
    multi_day_schedule: str | None = None

    @field_validator("application_date", "rental_date", mode="before")
    @classmethod
    def _parse_optional_dates(cls, value: Any) -> Any:
        return _coerce_date(value)

    @field_validator(
        "setup_start_time",
        "setup_end_time",
        "cleanup_start_time",
        "cleanup_end_time",
        "multi_day_schedule",
        mode="before",
    )
    @classmethod
    def _blank_optionals(cls, value: Any) -> Any:
        return _blank_to_none(value)


class Event(EventPayload):
    id: str = Field(default_factory=_new_id)
    status: EventStatus = EventStatus.PENDING
    created_at: datetime = Field(default_factory=_utcnow)


class Venue(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    description: str = ""
    category: str = "Venue"
    availability: bool = True


class Resource(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    description: str = ""
    category: str | None = None
    availability: bool = True


class Notification(BaseModel):
    id: str = Field(default_factory=_new_id)
    type: NotificationType
    message: str
    event_id: str | None = None
    resource_id: str | None = None
    booking_id: str | None = None
    status: NotificationStatus = NotificationStatus.PENDING
    created_at: datetime = Field(default_factory=_utcnow)


class Conflict(BaseModel):
    """An existing event that shares a venue and overlaps in time."""

    event_id: str
    event_name: str
    start_date: date
    end_date: date | None = None
    start_time: time
    end_time: time
    venue_ids: list[str] = Field(default_factory=list)
    venue_names: list[str] = Field(default_factory=list)

    def describe(self) -> str:
        return (
            f'"{self.event_name}" on {self.start_date.isoformat()} '
            f"from {format_time(self.start_time)} to {format_time(self.end_time)} "
            f"at {', '.join(self.venue_names)}"
        )


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class ConflictCheckResponse(BaseModel):
    has_conflicts: bool
    conflicts: list[Conflict] = Field(default_factory=list)


class NotificationView(Notification):
    """Notification joined with the names of what it refers to."""

    event_name: str | None = None
    resource_name: str | None = None


class MessageResponse(BaseModel):
    message: str
