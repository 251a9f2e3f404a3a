from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from smartlocker.core.entities.event import EventType, LifecycleEvent
from smartlocker.infrastructure.repositories.event_repository_jsonl_impl import EventStore, JsonlEventRepositoryImpl
from smartlocker.services.notifier import EventBus, EventLogSubscriber

T0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


def _event(event_type: EventType = EventType.SessionStarted, **overrides) -> LifecycleEvent:
    fields = {"occurred_at": T0, "type": event_type, "locker_id": 1, "session_id": 10, "user_id": 7}
    fields.update(overrides)
    return LifecycleEvent(**fields)


def test_add_if_absent_is_idempotent_on_event_id(tmp_path: Path) -> None:
    repo = JsonlEventRepositoryImpl(file_path=tmp_path / "events.jsonl")
    event = _event(payload={"amount_due": "5.00"})

    assert repo.add_if_absent(event) is True
    assert repo.add_if_absent(event) is False

    records = list(repo.iter_records())
    assert len(records) == 1
    assert records[0]["event_id"] == str(event.event_id)
    assert records[0]["type"] == "SessionStarted"
    assert records[0]["occurred_at"] == T0.isoformat()
    assert records[0]["payload"] == {"amount_due": "5.00"}


def test_dedup_survives_reopening_the_log(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "events.jsonl"
    event = _event()
    JsonlEventRepositoryImpl(file_path=path).add_if_absent(event)

    reopened = JsonlEventRepositoryImpl(file_path=path)

    assert reopened.add_if_absent(event) is False
    assert reopened.add_if_absent(_event(EventType.SessionEnded)) is True
    assert [r["type"] for r in reopened.iter_records()] == ["SessionStarted", "SessionEnded"]


def test_dedup_memory_is_bounded_to_the_most_recent_ids(tmp_path: Path) -> None:
    store = EventStore(tmp_path / "events.jsonl", dedup_window=3)
    for i in range(5):
        assert store.append({"event_id": f"e{i}"}) is True

    assert store.remembered == 3
    assert store.append({"event_id": "e4"}) is False
    assert store.append({"event_id": "e2"}) is False
    # Aged out of the window, so it is accepted again.
    assert store.append({"event_id": "e0"}) is True
    assert len(list(store.load_all())) == 6


def test_reopened_store_only_remembers_the_tail_of_the_log(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    writer = EventStore(path)
    for i in range(4):
        writer.append({"event_id": f"e{i}"})

    reopened = EventStore(path, dedup_window=2)

    assert reopened.append({"event_id": "e3"}) is False
    assert reopened.remembered == 2


def test_bus_filters_by_type_and_unsubscribes() -> None:
    bus = EventBus()
    everything: list[LifecycleEvent] = []
    expiries: list[LifecycleEvent] = []
    bus.subscribe(everything.append)
    unsubscribe = bus.subscribe(expiries.append, EventType.SessionExpired, EventType.SessionReclaimed)

    bus.publish(_event(EventType.SessionStarted))
    bus.publish(_event(EventType.SessionExpired))
    unsubscribe()
    bus.publish(_event(EventType.SessionReclaimed))

    assert [e.type for e in everything] == [
        EventType.SessionStarted,
        EventType.SessionExpired,
        EventType.SessionReclaimed,
    ]
    assert [e.type for e in expiries] == [EventType.SessionExpired]


def test_failing_subscriber_does_not_stop_delivery(caplog) -> None:
    bus = EventBus()
    received: list[LifecycleEvent] = []

    def broken(event: LifecycleEvent) -> None:
        raise RuntimeError("push gateway down")

    bus.subscribe(broken)
    bus.subscribe(received.append)

    with caplog.at_level(logging.ERROR, logger="smartlocker.services.notifier"):
        bus.publish(_event())

    assert len(received) == 1
    assert "push gateway down" in caplog.text


def test_event_log_subscriber_appends_published_events(tmp_path: Path) -> None:
    repo = JsonlEventRepositoryImpl(file_path=tmp_path / "events.jsonl")
    bus = EventBus()
    bus.subscribe(EventLogSubscriber(repo))
    event = _event(EventType.SessionExpired)

    bus.publish(event)
    bus.publish(event)

    assert [r["event_id"] for r in repo.iter_records()] == [str(event.event_id)]
