"""Approval workflow and the conflict fanout that follows an approval."""

from __future__ import annotations

import logging

from schedulink.domain.bus import EventBus
from schedulink.domain.errors import (
    ApprovalConflictError,
    InvalidStateError,
    NotFoundError,
)
from schedulink.domain.events import Broadcast, EventApproved, EventConflictAlert
from schedulink.domain.models import (
    Conflict,
    Event,
    EventStatus,
    Notification,
    NotificationStatus,
    NotificationType,
    format_time,
)
from schedulink.repos.memory import (
    EventRepository,
    NotificationRepository,
    ResourceRepository,
    VenueRepository,
)
from schedulink.services.conflicts import find_conflicts
from schedulink.services.locks import KeyedLock, notification_key, venue_keys

logger = logging.getLogger(__name__)

APPROVED_MESSAGE = "New event added! Check the calendar for new events."

_ACTIONABLE = {NotificationType.EVENT_APPROVAL, NotificationType.RESOURCE_BOOKING}


def conflict_notice(pending: Conflict, approved: Event, venue_names: list[str]) -> str:
    """Message filed against a pending event that the approval now blocks."""
    return (
        f'Your pending event "{pending.event_name}" conflicts with the recently '
        f'approved event "{approved.name}" on {approved.start_date.isoformat()} '
        f"from {format_time(approved.event_start_time)} to "
        f"{format_time(approved.event_end_time)} at {', '.join(venue_names)}. "
        "Please choose a different date, time, or venue."
    )


class ApprovalWorkflow:
    """Moves pending notifications (and the events behind them) to a terminal state.

    Every transition re-reads the notification and its event while holding
    the notification's lock and the event's venue locks, so the status check,
    the conflict check and the writes see one consistent state.
    """

    def __init__(
        self,
        bus: EventBus,
        event_repo: EventRepository,
        venue_repo: VenueRepository,
        resource_repo: ResourceRepository,
        notification_repo: NotificationRepository,
        locks: KeyedLock,
    ) -> None:
        self.bus = bus
        self.event_repo = event_repo
        self.venue_repo = venue_repo
        self.resource_repo = resource_repo
        self.notification_repo = notification_repo
        self.locks = locks

    # ------------------------------------------------------------------
    # Approve
    # ------------------------------------------------------------------

    def approve(self, notification_id: str) -> Notification:
        """Approve a notification.

        For an event notification the event must not overlap any other
        approved event; otherwise ApprovalConflictError is raised with the
        first conflict and nothing is changed. On success every pending event
        that now overlaps receives an ``event_conflict`` notification.
        Approving an already approved notification is a no-op.
        """
        while True:
            notification, event = self._load(notification_id, require_event=True)
            keys = self._lock_keys(notification, event)
            with self.locks.hold(keys):
                notification, event = self._load(notification_id, require_event=True)
                if self._lock_keys(notification, event) != keys:
                    continue

                if notification.status == NotificationStatus.APPROVED:
                    return notification
                if notification.status != NotificationStatus.PENDING:
                    raise InvalidStateError(f"Notification is already {notification.status}")

                if event is not None:
                    broadcasts = self._approve_event(notification, event)
                elif notification.resource_id is not None and notification.booking_id is not None:
                    broadcasts = self._approve_booking(notification)
                else:
                    raise InvalidStateError(
                        "Notification references neither an event nor a resource booking"
                    )
                break

        for message in broadcasts:
            self.bus.publish(message)
        return notification

    def _approve_event(self, notification: Notification, event: Event) -> list[Broadcast]:
        conflicts = find_conflicts(
            event, self.event_repo, self.venue_repo, exclude_event_id=event.id
        )
        if conflicts:
            first = conflicts[0]
            logger.info(
                "Approval of event %s blocked by approved event %s",
                event.id,
                first.event_id,
            )
            raise ApprovalConflictError(first)

        pending_conflicts = find_conflicts(
            event,
            self.event_repo,
            self.venue_repo,
            exclude_event_id=event.id,
            status=EventStatus.PENDING,
        )

        self.notification_repo.set_status(notification.id, NotificationStatus.APPROVED)
        self.event_repo.set_status(event.id, EventStatus.APPROVED)
        self.notification_repo.add(
            Notification(
                type=NotificationType.EVENT_APPROVED,
                message=APPROVED_MESSAGE,
                event_id=event.id,
                status=NotificationStatus.UNREAD,
            )
        )
        broadcasts: list[Broadcast] = [
            self._file_conflict_notice(pending, event) for pending in pending_conflicts
        ]

        logger.info(
            "Event %s approved; %d pending event(s) notified of conflicts",
            event.id,
            len(pending_conflicts),
        )
        broadcasts.append(EventApproved(message=APPROVED_MESSAGE, event_id=event.id))
        return broadcasts

    def _file_conflict_notice(self, pending: Conflict, approved: Event) -> Broadcast:
        self.notification_repo.add(
            Notification(
                type=NotificationType.EVENT_CONFLICT,
                message=conflict_notice(pending, approved, pending.venue_names),
                event_id=pending.event_id,
                status=NotificationStatus.UNREAD,
            )
        )
        return EventConflictAlert(
            message=f'Your pending event "{pending.event_name}" has a conflict',
            event_id=pending.event_id,
        )

    def _approve_booking(self, notification: Notification) -> list[Broadcast]:
        if self.resource_repo.get(notification.resource_id) is None:
            raise NotFoundError("Resource not found")
        self.notification_repo.set_status(notification.id, NotificationStatus.APPROVED)
        self.resource_repo.set_availability(notification.resource_id, False)
        logger.info("Resource %s booked", notification.resource_id)
        return []

    # ------------------------------------------------------------------
    # Decline
    # ------------------------------------------------------------------

    def decline(self, notification_id: str) -> Notification:
        """Decline a notification and its event. Declining twice is a no-op."""
        while True:
            notification, event = self._load(notification_id, require_event=False)
            keys = self._lock_keys(notification, event)
            with self.locks.hold(keys):
                notification, event = self._load(notification_id, require_event=False)
                if self._lock_keys(notification, event) != keys:
                    continue
                if notification.status == NotificationStatus.APPROVED:
                    raise InvalidStateError(f"Notification is already {notification.status}")

                self.notification_repo.set_status(notification.id, NotificationStatus.DECLINED)
                if event is not None:
                    self.event_repo.set_status(event.id, EventStatus.DECLINED)
                break

        logger.info("Notification %s declined", notification.id)
        return notification

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load(
        self, notification_id: str, require_event: bool
    ) -> tuple[Notification, Event | None]:
        notification = self.notification_repo.get(notification_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        if notification.type not in _ACTIONABLE:
            raise InvalidStateError(
                f"{notification.type} notifications cannot be approved or declined"
            )
        if notification.event_id is None:
            return notification, None
        event = self.event_repo.get(notification.event_id)
        if event is None and require_event:
            raise NotFoundError("Event not found")
        return notification, event

    @staticmethod
    def _lock_keys(notification: Notification, event: Event | None) -> set[str]:
        return {notification_key(notification.id)} | venue_keys(event)
