"""Event submission gate: create, update, delete and the advisory conflict check."""

from __future__ import annotations

import logging

from schedulink.domain.errors import (
    ConflictError,
    EventValidationError,
    NotFoundError,
    StorageError,
)
from schedulink.domain.models import (
    Conflict,
    Event,
    EventPayload,
    EventStatus,
    Notification,
    NotificationStatus,
    NotificationType,
    ScheduleWindow,
)
from schedulink.repos.memory import EventRepository, NotificationRepository, VenueRepository
from schedulink.services.conflicts import find_conflicts
from schedulink.services.locks import KeyedLock, venue_keys

logger = logging.getLogger(__name__)


def validate_payload(payload: EventPayload) -> None:
    """Reject semantically invalid submissions before any conflict detection."""
    if not payload.name.strip():
        raise EventValidationError("Event name and start date are required")
    if payload.end_date is not None and payload.end_date < payload.start_date:
        raise EventValidationError("end_date must not be before start_date")
    start, end = payload.event_start_time, payload.event_end_time
    if (start is None) != (end is None):
        raise EventValidationError(
            "event_start_time and event_end_time must be provided together"
        )
    if start is not None and end is not None and end <= start:
        raise EventValidationError("event_end_time must be after event_start_time")


class EventSubmissionService:
    """Guards event writes with the conflict detector."""

    def __init__(
        self,
        event_repo: EventRepository,
        venue_repo: VenueRepository,
        notification_repo: NotificationRepository,
        locks: KeyedLock,
        fail_open: bool = True,
    ) -> None:
        self.event_repo = event_repo
        self.venue_repo = venue_repo
        self.notification_repo = notification_repo
        self.locks = locks
        self.fail_open = fail_open

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, payload: EventPayload) -> Event:
        """Store *payload* as a pending event and file an approval notification.

        Raises ConflictError with every conflicting approved event.
        """
        validate_payload(payload)
        self._require_venues(payload.venue_ids)

        with self.locks.hold(venue_keys(payload)):
            self._reject_conflicts(payload)
            event = Event(**payload.model_dump(), status=EventStatus.PENDING)
            self.event_repo.add(event)
            self.notification_repo.add(
                Notification(
                    type=NotificationType.EVENT_APPROVAL,
                    message=f'New event "{event.name}" requires approval',
                    event_id=event.id,
                    status=NotificationStatus.PENDING,
                )
            )

        logger.info("Event %s submitted for approval", event.id)
        return event

    def update(self, event_id: str, payload: EventPayload) -> Event:
        """Replace an event's details; id, status and created_at are kept."""
        validate_payload(payload)
        self._require_venues(payload.venue_ids)

        while True:
            existing = self._get_event(event_id)
            keys = venue_keys(existing) | venue_keys(payload)
            with self.locks.hold(keys):
                # Re-read under the lock; retry if a concurrent update moved it.
                existing = self._get_event(event_id)
                if venue_keys(existing) | venue_keys(payload) != keys:
                    continue
                self._reject_conflicts(payload, exclude_event_id=event_id)
                updated = Event(
                    **payload.model_dump(),
                    id=existing.id,
                    status=existing.status,
                    created_at=existing.created_at,
                )
                self.event_repo.update(updated)
                break

        logger.info("Event %s updated", event_id)
        return updated

    def delete(self, event_id: str) -> None:
        """Delete an event together with every notification that references it."""
        self._get_event(event_id)
        self.notification_repo.delete_for_event(event_id)
        self.event_repo.delete(event_id)
        logger.info("Event %s and related notifications deleted", event_id)

    # ------------------------------------------------------------------
    # Advisory check
    # ------------------------------------------------------------------

    def check(
        self, candidate: ScheduleWindow, exclude_event_id: str | None = None
    ) -> list[Conflict]:
        """Dry-run conflict query; a storage failure reads as "no conflicts"."""
        try:
            return find_conflicts(
                candidate, self.event_repo, self.venue_repo, exclude_event_id
            )
        except StorageError:
            logger.warning("Advisory conflict check failed; reporting no conflicts", exc_info=True)
            return []

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_event(self, event_id: str) -> Event:
        event = self.event_repo.get(event_id)
        if event is None:
            raise NotFoundError("Event not found")
        return event

    def _require_venues(self, venue_ids: list[str]) -> None:
        for venue_id in venue_ids:
            if self.venue_repo.get(venue_id) is None:
                raise NotFoundError(f"Venue not found: {venue_id}")

    def _reject_conflicts(
        self, window: ScheduleWindow, exclude_event_id: str | None = None
    ) -> None:
        try:
            conflicts = find_conflicts(
                window, self.event_repo, self.venue_repo, exclude_event_id
            )
        except StorageError:
            if not self.fail_open:
                raise
            logger.warning("Conflict check failed; proceeding with write", exc_info=True)
            return
        if conflicts:
            logger.info(
                "Write rejected: %d conflict(s) with approved events", len(conflicts)
            )
            raise ConflictError(
                "Event conflicts with existing approved events", conflicts
            )
