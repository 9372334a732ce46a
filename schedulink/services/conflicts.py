"""Service for detecting venue/time conflicts between events."""

from __future__ import annotations

from datetime import time

from schedulink.domain.models import Conflict, Event, EventStatus, ScheduleWindow
from schedulink.repos.memory import EventRepository, VenueRepository


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def times_overlap(start1: time, end1: time, start2: time, end2: time) -> bool:
    """Half-open overlap on minutes since midnight.

    Windows that only touch (end1 == start2) are NOT considered conflicts.
    """
    return to_minutes(start1) < to_minutes(end2) and to_minutes(end1) > to_minutes(start2)


def shared_venues(venue_ids: list[str], other_venue_ids: list[str]) -> list[str]:
    """Venue ids present in both lists, deduplicated, in *venue_ids* order."""
    others = set(other_venue_ids)
    return list(dict.fromkeys(v for v in venue_ids if v in others))


def find_conflicts(
    candidate: ScheduleWindow,
    event_repo: EventRepository,
    venue_repo: VenueRepository,
    exclude_event_id: str | None = None,
    status: EventStatus = EventStatus.APPROVED,
) -> list[Conflict]:
    """Return events in *status* that share a venue and overlap in time with *candidate*.

    Only ``event_start_time``/``event_end_time`` take part; setup and cleanup
    windows are ignored. A candidate without venues or without both event
    times cannot conflict and yields an empty list. Results follow the
    repository's date-sorted scan order. Nothing is written.
    """
    if (
        not candidate.venue_ids
        or candidate.event_start_time is None
        or candidate.event_end_time is None
    ):
        return []

    existing_events = event_repo.list_overlapping(
        candidate.start_date,
        candidate.end_date,
        status=status,
        exclude_id=exclude_event_id,
    )

    conflicts: list[Conflict] = []
    for existing in existing_events:
        common = shared_venues(candidate.venue_ids, existing.venue_ids)
        if not common:
            continue
        if existing.event_start_time is None or existing.event_end_time is None:
            continue
        if not times_overlap(
            candidate.event_start_time,
            candidate.event_end_time,
            existing.event_start_time,
            existing.event_end_time,
        ):
            continue
        conflicts.append(_build_conflict(existing, common, venue_repo))
    return conflicts


def _build_conflict(existing: Event, common: list[str], venue_repo: VenueRepository) -> Conflict:
    names = {v.id: v.name for v in venue_repo.get_names(common)}
    return Conflict(
        event_id=existing.id,
        event_name=existing.name,
        start_date=existing.start_date,
        end_date=existing.end_date,
        start_time=existing.event_start_time,
        end_time=existing.event_end_time,
        venue_ids=common,
        venue_names=[names.get(vid, vid) for vid in common],
    )
