"""Service for filing resource booking requests."""

from __future__ import annotations

import logging

from schedulink.domain.errors import InvalidStateError, NotFoundError
from schedulink.domain.models import (
    Notification,
    NotificationStatus,
    NotificationType,
)
from schedulink.repos.memory import NotificationRepository, ResourceRepository

logger = logging.getLogger(__name__)


def request_booking(
    resource_id: str,
    resource_repo: ResourceRepository,
    notification_repo: NotificationRepository,
) -> Notification:
    """File a pending ``resource_booking`` notification for an available resource.

    Availability is a plain flag; approval flips it off. Dates and times
    play no part here.
    """
    resource = resource_repo.get(resource_id)
    if resource is None:
        raise NotFoundError("Resource not found")
    if not resource.availability:
        raise InvalidStateError("Resource not available")

    notification = Notification(
        type=NotificationType.RESOURCE_BOOKING,
        message=f'Resource "{resource.name}" booking request',
        resource_id=resource.id,
        booking_id=resource.id,
        status=NotificationStatus.PENDING,
    )
    notification_repo.add(notification)
    logger.info("Booking request %s filed for resource %s", notification.id, resource.id)
    return notification
