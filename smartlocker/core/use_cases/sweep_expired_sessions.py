from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from smartlocker.core.entities.event import EventType, LifecycleEvent
from smartlocker.core.entities.session import Session
from smartlocker.core.errors import SmartLockerError
from smartlocker.core.locks import locker_key, session_key, user_key
from smartlocker.core.use_cases.lifecycle_context import LifecycleContext, release_locker_for

logger = logging.getLogger(__name__)

DEFAULT_ABANDONED_AFTER = timedelta(hours=24)


@dataclass(frozen=True, slots=True)
class SweepResult:
    expired_session_ids: tuple[int, ...]
    failed_session_ids: tuple[int, ...] = ()

    @property
    def count(self) -> int:
        return len(self.expired_session_ids)


class SweepExpiredSessionsUseCase:
    """
    Move every ACTIVE session whose planned end has passed to EXPIRED and free its locker.

    Candidates come from a snapshot; each one is re-read under its own locks
    before being touched, so a session ended concurrently by its user is left
    alone. Running twice with the same `now` changes nothing the second time.

    Each expiry is committed and announced on its own. A candidate that fails
    is logged and reported in `failed_session_ids`; the rest still go through.
    """

    event_type = EventType.SessionExpired

    def __init__(self, *, context: LifecycleContext, grace: timedelta = timedelta(0)) -> None:
        self._ctx = context
        self._grace = grace

    def execute(self, *, now: datetime | None = None) -> SweepResult:
        now = now or self._ctx.clock()

        with self._ctx.uow_factory() as uow:
            candidates = [s for s in uow.sessions.list_active() if s.is_overdue(now, self._grace)]

        expired: list[int] = []
        failed: list[int] = []
        for candidate in candidates:
            try:
                session = self._expire_one(candidate, now)
            except SmartLockerError:
                logger.exception("%s: could not expire session %s", type(self).__name__, candidate.session_id)
                failed.append(candidate.session_id)
                continue
            if session is None:
                continue

            expired.append(session.session_id)
            self._ctx.publisher.publish(
                LifecycleEvent(
                    occurred_at=now,
                    type=self.event_type,
                    locker_id=session.locker_id,
                    session_id=session.session_id,
                    user_id=session.user_id,
                    payload={"ended_at": session.ended_at.isoformat(), "amount_due": str(session.amount_due)},
                )
            )

        if expired:
            logger.info("%s: %d session(s) moved to expired", type(self).__name__, len(expired))
        return SweepResult(expired_session_ids=tuple(expired), failed_session_ids=tuple(failed))

    def _expire_one(self, candidate: Session, now: datetime) -> Session | None:
        keys = (session_key(candidate.session_id), locker_key(candidate.locker_id), user_key(candidate.user_id))
        with self._ctx.locks.hold(*keys):
            with self._ctx.uow_factory() as uow:
                session = uow.sessions.find(candidate.session_id)
                if session is None or not session.is_overdue(now, self._grace):
                    logger.debug("Session %s no longer due for expiry, skipping", candidate.session_id)
                    return None

                session.expire()
                uow.sessions.update(session)
                release_locker_for(uow, session)
                uow.commit()
        return session


class ReclaimAbandonedSessionsUseCase(SweepExpiredSessionsUseCase):
    """
    Coarse backstop for sessions left ACTIVE long past their planned end.

    Same effect as the regular sweep, with a much larger threshold. It bounds
    locker unavailability after a restart on stale state, before the periodic
    sweep ever ran.
    """

    event_type = EventType.SessionReclaimed

    def __init__(self, *, context: LifecycleContext, abandoned_after: timedelta = DEFAULT_ABANDONED_AFTER) -> None:
        super().__init__(context=context, grace=abandoned_after)
