from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

from smartlocker.core.entities.event import LifecycleEvent
from smartlocker.core.entities.locker import LockerStatus
from smartlocker.core.entities.session import Session
from smartlocker.core.locks import KeyedLockManager
from smartlocker.core.repositories.unit_of_work import UnitOfWork


class EventPublisher(Protocol):
    """Fire-and-forget sink for lifecycle notifications."""

    def publish(self, event: LifecycleEvent) -> None:
        raise NotImplementedError


class _NullPublisher:
    def publish(self, event: LifecycleEvent) -> None:
        pass


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class LifecycleContext:
    """
    Collaborators shared by every lifecycle use case.

    One instance is built at process start by the composition root; use cases
    never reach for module-level state.
    """

    uow_factory: Callable[[], UnitOfWork]
    locks: KeyedLockManager = field(default_factory=KeyedLockManager)
    clock: Callable[[], datetime] = utc_now
    publisher: EventPublisher = field(default_factory=_NullPublisher)


def release_locker_for(uow: UnitOfWork, session: Session) -> bool:
    """
    Free the locker held by a session that just left ACTIVE.

    Returns True if the locker status changed.
    """
    locker = uow.lockers.get(session.locker_id)
    if locker.status is not LockerStatus.OCCUPIED:
        return False
    if locker.current_session_id not in (session.session_id, None):
        return False

    locker.release()
    uow.lockers.upsert(locker)
    return True
