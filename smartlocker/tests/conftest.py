from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable

import pytest

from smartlocker.core.entities.event import LifecycleEvent
from smartlocker.core.entities.locker import Locker, LockerStatus
from smartlocker.core.entities.session import Session
from smartlocker.core.locks import KeyedLockManager
from smartlocker.core.repositories.unit_of_work import UnitOfWork
from smartlocker.core.use_cases.lifecycle_context import LifecycleContext
from smartlocker.infrastructure.database import build_engine, build_session_factory, create_schema
from smartlocker.infrastructure.repositories.unit_of_work_impl import SqlAlchemyUnitOfWork

T0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class RecordingPublisher:
    def __init__(self) -> None:
        self.events: list[LifecycleEvent] = []

    def publish(self, event: LifecycleEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[str]:
        return [e.type.value for e in self.events]


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture()
def engine():
    """A fresh in-memory SQLite database per test."""
    eng = build_engine("sqlite+pysqlite:///:memory:")
    create_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def uow_factory(engine) -> Callable[[], UnitOfWork]:
    session_factory = build_session_factory(engine)
    return lambda: SqlAlchemyUnitOfWork(session_factory)


@pytest.fixture()
def context(uow_factory, clock, publisher) -> LifecycleContext:
    return LifecycleContext(uow_factory=uow_factory, locks=KeyedLockManager(), clock=clock, publisher=publisher)


@pytest.fixture()
def add_locker(uow_factory) -> Callable[..., Locker]:
    def _add(
        locker_id: int = 1,
        price: str = "2.50",
        status: LockerStatus = LockerStatus.AVAILABLE,
        name: str | None = None,
    ) -> Locker:
        locker = Locker(
            locker_id=locker_id,
            name=name or f"L{locker_id}",
            price_per_hour=Decimal(price),
            status=status,
        )
        with uow_factory() as uow:
            uow.lockers.upsert(locker)
            uow.commit()
        return locker

    return _add


@pytest.fixture()
def load_locker(uow_factory) -> Callable[[int], Locker]:
    def _load(locker_id: int) -> Locker:
        with uow_factory() as uow:
            return uow.lockers.get(locker_id)

    return _load


@pytest.fixture()
def load_session(uow_factory) -> Callable[[int], Session]:
    def _load(session_id: int) -> Session:
        with uow_factory() as uow:
            return uow.sessions.get(session_id)

    return _load
