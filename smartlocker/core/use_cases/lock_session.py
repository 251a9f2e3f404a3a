from __future__ import annotations

import logging

from smartlocker.core.entities.event import EventType, LifecycleEvent
from smartlocker.core.entities.session import Session
from smartlocker.core.errors import SessionNotActive, SessionNotFound
from smartlocker.core.locks import session_key
from smartlocker.core.use_cases.lifecycle_context import LifecycleContext

logger = logging.getLogger(__name__)


class LockSessionUseCase:
    """
    Record that the user deposited their items and closed the door.

    Only the owner of an active session may lock it. Locking twice keeps the
    first locked_at.
    """

    def __init__(self, *, context: LifecycleContext) -> None:
        self._ctx = context

    def execute(self, *, session_id: int, user_id: int) -> Session:
        with self._ctx.locks.hold(session_key(session_id)):
            with self._ctx.uow_factory() as uow:
                session = uow.sessions.get(session_id)
                if session.user_id != user_id:
                    raise SessionNotFound(session_id)
                if not session.is_active:
                    raise SessionNotActive(session_id, session.status.value)
                if session.is_locked:
                    return session

                now = self._ctx.clock()
                session.lock(now)
                uow.sessions.update(session)
                uow.commit()

        logger.info("Session %s locked at %s", session_id, now.isoformat())
        self._ctx.publisher.publish(
            LifecycleEvent(
                occurred_at=now,
                type=EventType.SessionLocked,
                locker_id=session.locker_id,
                session_id=session_id,
                user_id=user_id,
            )
        )
        return session
