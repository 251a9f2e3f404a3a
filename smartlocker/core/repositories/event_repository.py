from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from smartlocker.core.entities.event import LifecycleEvent


class EventRepository(ABC):
    @abstractmethod
    def add_if_absent(self, event: LifecycleEvent) -> bool:
        """Return True if inserted, False if duplicate (same event_id)."""
        raise NotImplementedError

    @abstractmethod
    def iter_records(self) -> Iterable[dict]:
        raise NotImplementedError
