"""Broadcast handlers, wired up at application startup."""

from __future__ import annotations

import logging
import threading
from collections import deque

from schedulink.domain.bus import EventBus
from schedulink.domain.events import Broadcast, EventApproved, EventConflictAlert

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Wires broadcast handlers to the bus and keeps a bounded recent feed."""

    def __init__(self, bus: EventBus, history_size: int = 100) -> None:
        self.bus = bus
        self._recent: deque[Broadcast] = deque(maxlen=history_size)
        self._lock = threading.Lock()
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(Broadcast, self.on_broadcast)
        self.bus.subscribe(EventApproved, self.on_event_approved)
        self.bus.subscribe(EventConflictAlert, self.on_conflict_alert)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_broadcast(self, event: Broadcast) -> None:
        with self._lock:
            self._recent.append(event)

    def on_event_approved(self, event: EventApproved) -> None:
        logger.info("Broadcast event_approved for event %s", event.event_id)

    def on_conflict_alert(self, event: EventConflictAlert) -> None:
        logger.info("Broadcast event_conflict for pending event %s", event.event_id)

    # ------------------------------------------------------------------
    # Feed
    # ------------------------------------------------------------------

    def list_recent(self) -> list[Broadcast]:
        """Return retained broadcasts, oldest first."""
        with self._lock:
            return list(self._recent)

    def clear(self) -> None:
        with self._lock:
            self._recent.clear()
