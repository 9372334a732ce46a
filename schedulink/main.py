"""FastAPI application: entry point for the scheduling administration service."""

from __future__ import annotations

import logging

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from schedulink.config import get_settings
from schedulink.domain.bus import EventBus
from schedulink.domain.errors import NotFoundError, SchedulingError
from schedulink.domain.events import Broadcast
from schedulink.domain.handlers import HandlerRegistry
from schedulink.domain.models import (
    ConflictCheckResponse,
    Event,
    EventPayload,
    EventStatus,
    MessageResponse,
    Notification,
    NotificationType,
    NotificationView,
    Resource,
    ScheduleWindow,
    Venue,
)
from schedulink.log import setup_logging
from schedulink.repos.memory import (
    EventRepository,
    NotificationRepository,
    create_resource_repository,
    create_venue_repository,
)
from schedulink.services.approvals import ApprovalWorkflow
from schedulink.services.bookings import request_booking
from schedulink.services.locks import KeyedLock
from schedulink.services.submissions import EventSubmissionService

settings = get_settings()
setup_logging(settings.log_level, debug=settings.debug)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, debug=settings.debug)
router = APIRouter(prefix=settings.api_prefix)

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
event_repo = EventRepository()
notification_repo = NotificationRepository()
venue_repo = create_venue_repository(seed=settings.seed_sample_data)
resource_repo = create_resource_repository(seed=settings.seed_sample_data)
venue_locks = KeyedLock()

handler_registry = HandlerRegistry(bus=event_bus, history_size=settings.broadcast_history_size)

submissions = EventSubmissionService(
    event_repo=event_repo,
    venue_repo=venue_repo,
    notification_repo=notification_repo,
    locks=venue_locks,
    fail_open=settings.conflict_check_fail_open,
)
approvals = ApprovalWorkflow(
    bus=event_bus,
    event_repo=event_repo,
    venue_repo=venue_repo,
    resource_repo=resource_repo,
    notification_repo=notification_repo,
    locks=venue_locks,
)


@app.exception_handler(SchedulingError)
async def handle_scheduling_error(request: Request, exc: SchedulingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning(
            "%s %s rejected (%d): %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# ── Events ────────────────────────────────────────────────────────────


@router.get("/events", response_model=list[Event])
def list_events(status: EventStatus | None = None) -> list[Event]:
    """Return all events, optionally filtered by status."""
    return event_repo.list_all(status)


@router.post("/events/check-conflicts", response_model=ConflictCheckResponse)
def check_conflicts(
    candidate: ScheduleWindow, exclude_event_id: str | None = None
) -> ConflictCheckResponse:
    """Advisory dry run: report conflicts with approved events, persist nothing."""
    conflicts = submissions.check(candidate, exclude_event_id)
    return ConflictCheckResponse(has_conflicts=bool(conflicts), conflicts=conflicts)


@router.get("/events/{event_id}", response_model=Event)
def get_event(event_id: str) -> Event:
    """Return a single event by id."""
    event = event_repo.get(event_id)
    if event is None:
        raise NotFoundError("Event not found")
    return event


@router.post("/events", response_model=Event, status_code=201)
def create_event(payload: EventPayload) -> Event:
    """Submit an event; it is stored as pending and queued for approval."""
    return submissions.create(payload)


@router.put("/events/{event_id}", response_model=Event)
def update_event(event_id: str, payload: EventPayload) -> Event:
    """Update an event's details, re-checking conflicts against approved events."""
    return submissions.update(event_id, payload)


@router.delete("/events/{event_id}", response_model=MessageResponse)
def delete_event(event_id: str) -> MessageResponse:
    submissions.delete(event_id)
    return MessageResponse(message="Event and related records deleted successfully")


# ── Notifications ─────────────────────────────────────────────────────


def _to_view(notification: Notification) -> NotificationView:
    event = event_repo.get(notification.event_id) if notification.event_id else None
    resource = (
        resource_repo.get(notification.resource_id) if notification.resource_id else None
    )
    return NotificationView(
        **notification.model_dump(),
        event_name=event.name if event else None,
        resource_name=resource.name if resource else None,
    )


@router.get("/notifications", response_model=list[NotificationView])
def list_notifications(
    type: NotificationType = NotificationType.EVENT_APPROVAL,
) -> list[NotificationView]:
    """Return notifications of one type (approval requests by default), newest first."""
    return [_to_view(n) for n in notification_repo.list_all(type)]


@router.get("/notifications/{notification_id}", response_model=NotificationView)
def get_notification(notification_id: str) -> NotificationView:
    notification = notification_repo.get(notification_id)
    if notification is None:
        raise NotFoundError("Notification not found")
    return _to_view(notification)


@router.put("/notifications/{notification_id}/approve", response_model=MessageResponse)
def approve_notification(notification_id: str) -> MessageResponse:
    """Approve a notification; blocked with 409 if the event overlaps an approved one."""
    approvals.approve(notification_id)
    return MessageResponse(message="Notification approved successfully")


@router.put("/notifications/{notification_id}/decline", response_model=MessageResponse)
def decline_notification(notification_id: str) -> MessageResponse:
    approvals.decline(notification_id)
    return MessageResponse(message="Notification declined successfully")


# ── Venues & resources ────────────────────────────────────────────────


@router.get("/venues", response_model=list[Venue])
def list_venues() -> list[Venue]:
    return venue_repo.list_all()


@router.get("/venues/{venue_id}", response_model=Venue)
def get_venue(venue_id: str) -> Venue:
    venue = venue_repo.get(venue_id)
    if venue is None:
        raise NotFoundError("Venue not found")
    return venue


@router.get("/resources", response_model=list[Resource])
def list_resources() -> list[Resource]:
    return resource_repo.list_all()


@router.get("/resources/{resource_id}", response_model=Resource)
def get_resource(resource_id: str) -> Resource:
    resource = resource_repo.get(resource_id)
    if resource is None:
        raise NotFoundError("Resource not found")
    return resource


@router.post("/resources/{resource_id}/book", response_model=MessageResponse)
def book_resource(resource_id: str) -> MessageResponse:
    """File a booking request for an available resource."""
    request_booking(resource_id, resource_repo, notification_repo)
    return MessageResponse(message="Booking request submitted for approval")


# ── Broadcasts ────────────────────────────────────────────────────────


@router.get("/broadcasts", response_model=list[Broadcast])
def list_broadcasts() -> list[Broadcast]:
    """Return recently published broadcasts, oldest first."""
    return handler_registry.list_recent()


app.include_router(router)
