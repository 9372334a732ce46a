"""Serializing locks keyed per venue (and per notification)."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from schedulink.domain.models import ScheduleWindow


def venue_keys(window: ScheduleWindow | None) -> set[str]:
    """Lock keys for the venues *window* can conflict on.

    A window without both event times never conflicts, so it needs none.
    """
    if window is None or window.event_start_time is None or window.event_end_time is None:
        return set()
    return {f"venue:{venue_id}" for venue_id in window.venue_ids}


def notification_key(notification_id: str) -> str:
    return f"notification:{notification_id}"


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class KeyedLock:
    """Hands out one lock per key so that a conflict check and the write
    depending on it run without a competing write to the same venue.

    Keys are always acquired in sorted order, so two writers with overlapping
    key sets cannot deadlock. An entry is dropped once nobody holds or waits
    on it, so the registry only ever contains keys in use.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[str, _Entry] = {}

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1
            return entry.lock

    def _checkin(self, key: str) -> None:
        with self._guard:
            entry = self._entries[key]
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]

    @contextmanager
    def hold(self, keys: Iterable[str]) -> Iterator[None]:
        acquired: list[tuple[str, threading.Lock]] = []
        try:
            for key in sorted(set(keys)):
                lock = self._checkout(key)
                try:
                    lock.acquire()
                except BaseException:
                    self._checkin(key)
                    raise
                acquired.append((key, lock))
            yield
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._checkin(key)

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)
