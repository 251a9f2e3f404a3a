from __future__ import annotations

from smartlocker.core.entities.locker import Locker
from smartlocker.core.use_cases.lifecycle_context import LifecycleContext


class GetLockerUseCase:
    def __init__(self, *, context: LifecycleContext) -> None:
        self._ctx = context

    def execute(self, *, locker_id: int) -> Locker:
        with self._ctx.uow_factory() as uow:
            return uow.lockers.get(locker_id)


class ListLockersUseCase:
    def __init__(self, *, context: LifecycleContext) -> None:
        self._ctx = context

    def execute(self, *, available_only: bool = False) -> list[Locker]:
        with self._ctx.uow_factory() as uow:
            lockers = uow.lockers.list_available() if available_only else uow.lockers.list_all()
        return sorted(lockers, key=lambda locker: locker.locker_id)
