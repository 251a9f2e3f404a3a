from __future__ import annotations

import json
import threading
from collections import deque
from collections.abc import Iterable
from dataclasses import asdict
from pathlib import Path
from typing import Any

from smartlocker.core.entities.event import LifecycleEvent
from smartlocker.core.repositories.event_repository import EventRepository

DEFAULT_DEDUP_WINDOW = 10_000


class EventStore:
    """
    Append-only JSONL file, one record per line, de-duplicated on event_id.

    Only the most recent `dedup_window` ids are remembered, so memory stays
    bounded however long the log grows. Redelivery happens within moments of
    the first publish, well inside the window.
    """

    def __init__(self, path: Path, dedup_window: int = DEFAULT_DEDUP_WINDOW):
        if dedup_window <= 0:
            raise ValueError("dedup_window must be positive")
        self._path = path
        self._path.touch(exist_ok=True)
        self._lock = threading.Lock()
        self._window = dedup_window
        self._recent: deque[str] | None = None
        self._seen: set[str] = set()

    def append(self, record: dict[str, Any]) -> bool:
        with self._lock:
            self._load_recent()
            if record["event_id"] in self._seen:
                return False

            with self._path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(record) + "\n")
            self._remember(record["event_id"])
            return True

    def _load_recent(self) -> None:
        if self._recent is not None:
            return
        self._recent = deque()
        for record in self.load_all():
            self._remember(record["event_id"])

    def _remember(self, event_id: str) -> None:
        if event_id in self._seen:
            return
        self._recent.append(event_id)
        self._seen.add(event_id)
        if len(self._recent) > self._window:
            self._seen.discard(self._recent.popleft())

    @property
    def remembered(self) -> int:
        return len(self._seen)

    def load_all(self) -> Iterable[dict[str, Any]]:
        with self._path.open(encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    yield json.loads(line)


class JsonlEventRepositoryImpl(EventRepository):
    """
    Event repository backed by an append-only JSONL EventStore.

    Responsibilities:
      - translate between LifecycleEvent entities and persisted dict records
      - expose repository API (add_if_absent/iter_records)
    """

    def __init__(self, *, file_path: str | Path, dedup_window: int = DEFAULT_DEDUP_WINDOW) -> None:
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self._store = EventStore(path, dedup_window)

    def add_if_absent(self, event: LifecycleEvent) -> bool:
        return self._store.append(self._event_to_record(event))

    def iter_records(self) -> Iterable[dict[str, Any]]:
        return self._store.load_all()

    @staticmethod
    def _event_to_record(event: LifecycleEvent) -> dict[str, Any]:
        """
        Normalize datetimes, ids and enums for persistence
        """
        record = asdict(event)
        record["event_id"] = str(event.event_id)
        record["occurred_at"] = event.occurred_at.isoformat()
        record["type"] = event.type.value
        return record
