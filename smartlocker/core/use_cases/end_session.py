from __future__ import annotations

import logging

from smartlocker.core.entities.event import EventType, LifecycleEvent
from smartlocker.core.entities.session import PaymentStatus, Session
from smartlocker.core.errors import SessionNotActive, SessionNotFound
from smartlocker.core.locks import locker_key, session_key, user_key
from smartlocker.core.use_cases.lifecycle_context import LifecycleContext, release_locker_for

logger = logging.getLogger(__name__)


class EndSessionUseCase:
    """
    Terminate an active session on the user's request and settle its amount.

    Ending a session that is already terminal is an error, never a silent no-op.
    """

    def __init__(self, *, context: LifecycleContext) -> None:
        self._ctx = context

    def execute(
        self,
        *,
        session_id: int,
        payment_status: PaymentStatus,
        user_id: int | None = None,
    ) -> Session:
        # Locker and user never change for a session, so they can be read before locking.
        with self._ctx.uow_factory() as uow:
            snapshot = uow.sessions.get(session_id)

        keys = (session_key(session_id), locker_key(snapshot.locker_id), user_key(snapshot.user_id))
        with self._ctx.locks.hold(*keys):
            with self._ctx.uow_factory() as uow:
                session = uow.sessions.get(session_id)
                if user_id is not None and session.user_id != user_id:
                    raise SessionNotFound(session_id)
                if not session.is_active:
                    raise SessionNotActive(session_id, session.status.value)

                locker = uow.lockers.get(session.locker_id)
                now = self._ctx.clock()
                session.finish(ended_at=now, price_per_hour=locker.price_per_hour, payment_status=payment_status)
                uow.sessions.update(session)
                release_locker_for(uow, session)
                uow.commit()

        logger.info(
            "Session %s finished: locker=%s amount_due=%s payment=%s",
            session_id, session.locker_id, session.amount_due, session.payment_status.value,
        )
        self._ctx.publisher.publish(
            LifecycleEvent(
                occurred_at=now,
                type=EventType.SessionEnded,
                locker_id=session.locker_id,
                session_id=session_id,
                user_id=session.user_id,
                payload={
                    "amount_due": str(session.amount_due),
                    "payment_status": session.payment_status.value,
                },
            )
        )
        return session
