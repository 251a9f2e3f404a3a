from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from smartlocker.core.entities.event import EventType, LifecycleEvent
from smartlocker.core.repositories.event_repository import EventRepository

logger = logging.getLogger(__name__)

Subscriber = Callable[[LifecycleEvent], None]


class EventBus:
    """
    In-process publish/subscribe for lifecycle notifications.

    Delivery is fire-and-forget: a failing subscriber is logged and skipped,
    it never fails the operation that published the event.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: list[tuple[frozenset[EventType] | None, Subscriber]] = []

    def subscribe(self, callback: Subscriber, *types: EventType) -> Callable[[], None]:
        """Register a callback, optionally filtered by event type. Returns an unsubscribe function."""
        entry = (frozenset(types) or None, callback)
        with self._lock:
            self._subscribers.append(entry)

        def unsubscribe() -> None:
            with self._lock:
                if entry in self._subscribers:
                    self._subscribers.remove(entry)

        return unsubscribe

    def publish(self, event: LifecycleEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)

        for types, callback in subscribers:
            if types is not None and event.type not in types:
                continue
            try:
                callback(event)
            except Exception:
                logger.exception("Subscriber %r failed on %s event %s", callback, event.type.value, event.event_id)


class EventLogSubscriber:
    """Appends every lifecycle event to the audit log."""

    def __init__(self, event_repo: EventRepository) -> None:
        self._event_repo = event_repo

    def __call__(self, event: LifecycleEvent) -> None:
        if not self._event_repo.add_if_absent(event):
            logger.debug("Event %s already in the audit log", event.event_id)
