"""Event broadcast — fire-and-forget "registry changed" style signals for views."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

REGISTRY_CHANGED = "registry-changed"
TIMER_EXECUTED = "timer-executed"
SETTINGS_CHANGED = "settings-changed"

# Listener signature: (event: dict) -> None
EventListener = Callable[[dict[str, Any]], None]


class EventBus:
    """Publishes events to whoever is listening, if anyone.

    There is no delivery guarantee: a listener that raises is logged and
    skipped, and publishing with no listeners is not an error. Listeners
    receive ``{"event": name, **payload}`` and are expected to re-fetch the
    timer list rather than apply a diff.
    """

    def __init__(self) -> None:
        self._listeners: list[EventListener] = []

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register *listener*; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def publish(self, event: str, **payload: Any) -> int:
        """Deliver *event* to every listener. Returns how many accepted it."""
        message = {"event": event, **payload}
        delivered = 0
        for listener in list(self._listeners):
            try:
                listener(message)
                delivered += 1
            except Exception:
                logger.warning("Event listener failed for %s", event, exc_info=True)
        logger.debug("Published %s to %d listener(s)", event, delivered)
        return delivered
