from __future__ import annotations

import logging

from smartlocker.core.entities.event import EventType, LifecycleEvent
from smartlocker.core.entities.locker import Locker
from smartlocker.core.errors import LockerUnavailable
from smartlocker.core.locks import locker_key, user_key
from smartlocker.core.use_cases.lifecycle_context import LifecycleContext

logger = logging.getLogger(__name__)


class OpenLockerUseCase:
    """
    Remote unlock: the door opens only for the user whose active session holds the locker.
    """

    def __init__(self, *, context: LifecycleContext) -> None:
        self._ctx = context

    def execute(self, *, locker_id: int, user_id: int) -> Locker:
        with self._ctx.locks.hold(locker_key(locker_id), user_key(user_id)):
            with self._ctx.uow_factory() as uow:
                locker = uow.lockers.get(locker_id)
                active = uow.sessions.find_active_by_user(user_id)
                if active is None or active.locker_id != locker_id or locker.current_session_id != active.session_id:
                    raise LockerUnavailable(locker_id, locker.status.value)

                now = self._ctx.clock()
                locker.mark_opened(now)
                uow.lockers.upsert(locker)
                uow.commit()

        logger.info("Locker %s opened by user %s", locker_id, user_id)
        self._ctx.publisher.publish(
            LifecycleEvent(
                occurred_at=now,
                type=EventType.LockerOpened,
                locker_id=locker_id,
                session_id=active.session_id,
                user_id=user_id,
            )
        )
        return locker
