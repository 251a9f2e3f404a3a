from __future__ import annotations

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from smartlocker.core.entities.locker import LockerStatus
from smartlocker.core.errors import ConflictError, ErrorKind, NotFoundError, StorageUnavailable
from smartlocker.core.locks import KeyedLockManager
from smartlocker.core.use_cases.lifecycle_context import LifecycleContext
from smartlocker.core.use_cases.start_session import StartSessionUseCase
from smartlocker.core.use_cases.sweep_expired_sessions import SweepExpiredSessionsUseCase
from smartlocker.infrastructure.database import build_session_factory
from smartlocker.infrastructure.repositories.unit_of_work_impl import SqlAlchemyUnitOfWork


def _disk_error(*args, **kwargs) -> None:
    raise OperationalError("COMMIT", {}, Exception("disk I/O error"))


@pytest.fixture()
def failing_session_factory(engine):
    """Own factory on the shared test database, so failures can be injected without touching the fixtures."""
    return build_session_factory(engine)


@pytest.fixture()
def failing_context(failing_session_factory, clock, publisher) -> LifecycleContext:
    return LifecycleContext(
        uow_factory=lambda: SqlAlchemyUnitOfWork(failing_session_factory),
        locks=KeyedLockManager(),
        clock=clock,
        publisher=publisher,
    )


def test_failed_commit_surfaces_as_storage_unavailable_and_changes_nothing(
    failing_session_factory, failing_context, add_locker, load_locker, uow_factory, publisher
) -> None:
    add_locker(1)
    event.listen(failing_session_factory, "before_commit", _disk_error)

    with pytest.raises(StorageUnavailable) as excinfo:
        StartSessionUseCase(context=failing_context).execute(user_id=1, locker_id=1, planned_duration_hours=1)

    error = excinfo.value
    assert error.kind is ErrorKind.STORAGE_UNAVAILABLE
    assert not isinstance(error, (NotFoundError, ConflictError))
    assert isinstance(error.__cause__, OperationalError)

    locker = load_locker(1)
    assert locker.status is LockerStatus.AVAILABLE
    assert locker.current_session_id is None
    with uow_factory() as uow:
        assert uow.sessions.list_by_user(1) == []
        assert uow.sessions.list_active() == []
    assert publisher.events == []


def test_failed_read_is_not_mistaken_for_a_missing_row(failing_session_factory, failing_context, add_locker) -> None:
    add_locker(1)
    event.listen(failing_session_factory, "do_orm_execute", _disk_error)

    with pytest.raises(StorageUnavailable):
        with failing_context.uow_factory() as uow:
            uow.sessions.list_active()
    with pytest.raises(StorageUnavailable):
        SweepExpiredSessionsUseCase(context=failing_context).execute()


def test_store_recovers_once_the_driver_does(failing_session_factory, failing_context, add_locker, load_locker) -> None:
    add_locker(1)
    event.listen(failing_session_factory, "before_commit", _disk_error)
    start = StartSessionUseCase(context=failing_context)
    with pytest.raises(StorageUnavailable):
        start.execute(user_id=1, locker_id=1, planned_duration_hours=1)

    event.remove(failing_session_factory, "before_commit", _disk_error)
    session = start.execute(user_id=1, locker_id=1, planned_duration_hours=1)

    assert load_locker(1).current_session_id == session.session_id
