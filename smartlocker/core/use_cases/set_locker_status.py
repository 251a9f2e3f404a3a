from __future__ import annotations

import logging

from smartlocker.core.entities.event import EventType, LifecycleEvent
from smartlocker.core.entities.locker import Locker, LockerStatus
from smartlocker.core.errors import LockerUnavailable
from smartlocker.core.locks import locker_key
from smartlocker.core.use_cases.lifecycle_context import LifecycleContext

logger = logging.getLogger(__name__)


class SetLockerStatusUseCase:
    """
    Administrative status change (maintenance, out of order, back in service).

    OCCUPIED is owned by the session lifecycle: it can neither be set here nor
    be left through here.
    """

    def __init__(self, *, context: LifecycleContext) -> None:
        self._ctx = context

    def execute(self, *, locker_id: int, status: LockerStatus) -> Locker:
        with self._ctx.locks.hold(locker_key(locker_id)):
            with self._ctx.uow_factory() as uow:
                locker = uow.lockers.get(locker_id)
                if status is LockerStatus.OCCUPIED or locker.status is LockerStatus.OCCUPIED:
                    raise LockerUnavailable(locker_id, locker.status.value)
                if locker.status is status:
                    return locker

                previous = locker.status
                locker = uow.lockers.set_status(locker_id, status)
                uow.commit()

        logger.info("Locker %s status %s -> %s", locker_id, previous.value, status.value)
        self._ctx.publisher.publish(
            LifecycleEvent(
                occurred_at=self._ctx.clock(),
                type=EventType.LockerStatusChanged,
                locker_id=locker_id,
                payload={"from": previous.value, "to": status.value},
            )
        )
        return locker
