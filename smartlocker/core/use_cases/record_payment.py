from __future__ import annotations

import logging

from smartlocker.core.entities.event import EventType, LifecycleEvent
from smartlocker.core.entities.session import PaymentStatus, Session
from smartlocker.core.errors import SessionNotFound, SessionStillActive
from smartlocker.core.locks import session_key
from smartlocker.core.use_cases.lifecycle_context import LifecycleContext

logger = logging.getLogger(__name__)


class RecordPaymentUseCase:
    """
    Settle (or mark as failed) the payment of a session that already ended.

    Active sessions are paid through EndSession; expired sessions can only be
    paid here.
    """

    def __init__(self, *, context: LifecycleContext) -> None:
        self._ctx = context

    def execute(self, *, session_id: int, payment_status: PaymentStatus, user_id: int | None = None) -> Session:
        with self._ctx.locks.hold(session_key(session_id)):
            with self._ctx.uow_factory() as uow:
                session = uow.sessions.get(session_id)
                if user_id is not None and session.user_id != user_id:
                    raise SessionNotFound(session_id)
                if session.is_active:
                    raise SessionStillActive(session_id)
                if session.payment_status is payment_status:
                    return session

                session.payment_status = payment_status
                uow.sessions.update(session)
                uow.commit()

        logger.info("Session %s payment status set to %s", session_id, payment_status.value)
        self._ctx.publisher.publish(
            LifecycleEvent(
                occurred_at=self._ctx.clock(),
                type=EventType.PaymentRecorded,
                locker_id=session.locker_id,
                session_id=session_id,
                user_id=session.user_id,
                payload={"payment_status": payment_status.value, "amount_due": str(session.amount_due)},
            )
        )
        return session
