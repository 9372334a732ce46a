"""Simple synchronous in-process broadcast bus."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)


class EventBus:
    """Publish/subscribe bus for broadcast messages.

    Handlers are called synchronously in registration order. Delivery is
    best-effort: a failing handler is logged and the remaining handlers still
    run, so publishing never fails the caller's unit of work.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Callable]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Callable) -> None:
        self._subscribers[event_type].append(handler)

    def publish(self, event: Any) -> None:
        handlers = [
            handler
            for event_type, registered in self._subscribers.items()
            if isinstance(event, event_type)
            for handler in registered
        ]
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Broadcast handler %r failed for %s", handler, type(event).__name__
                )
