"""In-memory repositories for events, venues, resources and notifications."""

from __future__ import annotations

from datetime import date

from schedulink.domain.models import (
    Event,
    EventStatus,
    Notification,
    NotificationStatus,
    NotificationType,
    Resource,
    Venue,
)


def dates_overlap(start1: date, end1: date | None, start2: date, end2: date | None) -> bool:
    """Inclusive day-granularity overlap; a missing end means a single day."""
    end1 = end1 or start1
    end2 = end2 or start2
    return start2 <= start1 <= end2 or start1 <= start2 <= end1


class EventRepository:
    """Dict-backed store for Event instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Event] = {}

    def add(self, event: Event) -> None:
        self._store[event.id] = event

    def get(self, event_id: str) -> Event | None:
        return self._store.get(event_id)

    def update(self, event: Event) -> None:
        self._store[event.id] = event

    def delete(self, event_id: str) -> bool:
        return self._store.pop(event_id, None) is not None

    def set_status(self, event_id: str, status: EventStatus) -> None:
        event = self._store.get(event_id)
        if event is not None:
            event.status = status

    def list_all(self, status: EventStatus | None = None) -> list[Event]:
        """Return events newest start date first, optionally filtered by status."""
        events = [e for e in self._store.values() if status is None or e.status == status]
        return sorted(events, key=lambda e: e.start_date, reverse=True)

    def list_overlapping(
        self,
        start: date,
        end: date | None,
        status: EventStatus,
        exclude_id: str | None = None,
    ) -> list[Event]:
        """Return events in *status* whose date range overlaps [start, end].

        Results are sorted by start date; insertion order breaks ties.
        """
        matches = [
            e
            for e in self._store.values()
            if e.status == status
            and e.id != exclude_id
            and dates_overlap(start, end, e.start_date, e.end_date)
        ]
        return sorted(matches, key=lambda e: e.start_date)


class VenueRepository:
    """Dict-backed registry of bookable venues."""

    def __init__(self) -> None:
        self._store: dict[str, Venue] = {}

    def add(self, venue: Venue) -> None:
        self._store[venue.id] = venue

    def get(self, venue_id: str) -> Venue | None:
        return self._store.get(venue_id)

    def list_all(self) -> list[Venue]:
        return sorted(self._store.values(), key=lambda v: v.name)

    def get_names(self, venue_ids: list[str]) -> list[Venue]:
        """Resolve ids to venues, skipping unknown ids and keeping input order."""
        return [self._store[vid] for vid in venue_ids if vid in self._store]


class ResourceRepository:
    """Dict-backed store for shared resources."""

    def __init__(self) -> None:
        self._store: dict[str, Resource] = {}

    def add(self, resource: Resource) -> None:
        self._store[resource.id] = resource

    def get(self, resource_id: str) -> Resource | None:
        return self._store.get(resource_id)

    def list_all(self) -> list[Resource]:
        return sorted(self._store.values(), key=lambda r: r.name)

    def set_availability(self, resource_id: str, availability: bool) -> None:
        resource = self._store.get(resource_id)
        if resource is not None:
            resource.availability = availability


class NotificationRepository:
    """Dict-backed store for Notification instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Notification] = {}

    def add(self, notification: Notification) -> None:
        self._store[notification.id] = notification

    def get(self, notification_id: str) -> Notification | None:
        return self._store.get(notification_id)

    def set_status(self, notification_id: str, status: NotificationStatus) -> None:
        notification = self._store.get(notification_id)
        if notification is not None:
            notification.status = status

    def list_all(self, type: NotificationType | None = None) -> list[Notification]:
        """Return notifications newest first, optionally filtered by type."""
        items = [n for n in self._store.values() if type is None or n.type == type]
        return sorted(items, key=lambda n: n.created_at, reverse=True)

    def list_for_event(self, event_id: str) -> list[Notification]:
        return [n for n in self._store.values() if n.event_id == event_id]

    def delete_for_event(self, event_id: str) -> None:
        to_remove = [nid for nid, n in self._store.items() if n.event_id == event_id]
        for nid in to_remove:
            del self._store[nid]


# ---------------------------------------------------------------------------
# Seed data – a few venues and resources so a fresh process is usable
# ---------------------------------------------------------------------------


def _seed_venues(repo: VenueRepository) -> None:
    for name, description in (
        ("Main Auditorium", "Ground floor, seats 400"),
        ("Conference Room A", "Second floor, projector installed"),
        ("Gymnasium", "Covered court with bleachers"),
        ("Open Field", "Outdoor area behind the library"),
    ):
        repo.add(Venue(name=name, description=description))


def _seed_resources(repo: ResourceRepository) -> None:
    for name, category in (
        ("Portable Sound System", "Audio"),
        ("Projector Kit", "Visual"),
        ("Folding Chairs (50)", "Furniture"),
    ):
        repo.add(Resource(name=name, category=category))


def create_venue_repository(seed: bool = True) -> VenueRepository:
    """Return a VenueRepository, pre-loaded with sample venues when *seed*."""
    repo = VenueRepository()
    if seed:
        _seed_venues(repo)
    return repo


def create_resource_repository(seed: bool = True) -> ResourceRepository:
    """Return a ResourceRepository, pre-loaded with sample resources when *seed*."""
    repo = ResourceRepository()
    if seed:
        _seed_resources(repo)
    return repo
