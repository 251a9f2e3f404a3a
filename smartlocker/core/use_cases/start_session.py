from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from smartlocker.core.entities.event import EventType, LifecycleEvent
from smartlocker.core.entities.session import Session, quantize_money
from smartlocker.core.errors import InvalidDuration, LockerUnavailable, SessionAlreadyActive
from smartlocker.core.locks import locker_key, user_key
from smartlocker.core.use_cases.lifecycle_context import LifecycleContext

logger = logging.getLogger(__name__)

DEFAULT_MAX_SESSION_HOURS = 24


def _parse_duration(value: object, max_hours: int) -> Decimal:
    if isinstance(value, bool):
        raise InvalidDuration(value, max_hours)
    try:
        hours = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise InvalidDuration(value, max_hours) from e

    if not hours.is_finite() or hours <= 0 or hours > max_hours:
        raise InvalidDuration(value, max_hours)
    return hours


class StartSessionUseCase:
    """
    Open a rental session on an available locker.

    Preconditions are checked in a fixed order and the first failure wins:
    locker exists, locker is available, user has no active session, duration
    is within policy. Nothing is written until all of them pass.
    """

    def __init__(
        self,
        *,
        context: LifecycleContext,
        max_duration_hours: int = DEFAULT_MAX_SESSION_HOURS,
        currency: str = "EUR",
    ) -> None:
        self._ctx = context
        self._max_duration_hours = max_duration_hours
        self._currency = currency

    def execute(
        self,
        *,
        user_id: int,
        locker_id: int,
        planned_duration_hours: object,
        items: Iterable[str] = (),
    ) -> Session:
        with self._ctx.locks.hold(locker_key(locker_id), user_key(user_id)):
            with self._ctx.uow_factory() as uow:
                locker = uow.lockers.get(locker_id)
                if not locker.is_available:
                    raise LockerUnavailable(locker_id, locker.status.value)

                active = uow.sessions.find_active_by_user(user_id)
                if active is not None:
                    raise SessionAlreadyActive(user_id, active.session_id)

                hours = _parse_duration(planned_duration_hours, self._max_duration_hours)

                now = self._ctx.clock()
                session = uow.sessions.create(
                    Session(
                        user_id=user_id,
                        locker_id=locker_id,
                        started_at=now,
                        planned_end_at=now + timedelta(hours=float(hours)),
                        amount_due=quantize_money(hours * locker.price_per_hour),
                        currency=self._currency,
                        items=list(items),
                    )
                )

                locker.occupy(session.session_id)
                uow.lockers.upsert(locker)
                uow.commit()

        logger.info(
            "Session %s started: user=%s locker=%s hours=%s amount_due=%s",
            session.session_id, user_id, locker_id, hours, session.amount_due,
        )
        self._ctx.publisher.publish(
            LifecycleEvent(
                occurred_at=now,
                type=EventType.SessionStarted,
                locker_id=locker_id,
                session_id=session.session_id,
                user_id=user_id,
                payload={
                    "planned_end_at": session.planned_end_at.isoformat(),
                    "amount_due": str(session.amount_due),
                },
            )
        )
        return session
