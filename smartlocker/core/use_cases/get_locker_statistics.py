from __future__ import annotations

from collections import Counter

from smartlocker.core.entities.locker import LockerStatus
from smartlocker.core.use_cases.lifecycle_context import LifecycleContext


class GetLockerStatisticsUseCase:
    """Number of lockers per status; every status is present, possibly with 0."""

    def __init__(self, *, context: LifecycleContext) -> None:
        self._ctx = context

    def execute(self) -> dict[LockerStatus, int]:
        with self._ctx.uow_factory() as uow:
            counts = Counter(locker.status for locker in uow.lockers.list_all())
        return {status: counts.get(status, 0) for status in LockerStatus}
