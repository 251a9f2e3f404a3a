from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from smartlocker.core.entities.session import Session, SessionStatus
from smartlocker.core.errors import SessionNotFound
from smartlocker.core.use_cases.lifecycle_context import LifecycleContext


def remaining_time(session: Session, now: datetime) -> timedelta:
    """max(0, planned_end_at - now). Pure; a zero result does not imply EXPIRED."""
    return session.remaining_time(now)


@dataclass(frozen=True, slots=True)
class RemainingTimeDTO:
    session_id: int
    status: SessionStatus
    planned_end_at: datetime
    remaining: timedelta

    @property
    def remaining_seconds(self) -> int:
        return int(self.remaining.total_seconds())


class GetRemainingTimeUseCase:
    def __init__(self, *, context: LifecycleContext) -> None:
        self._ctx = context

    def execute(self, *, session_id: int, user_id: int | None = None) -> RemainingTimeDTO:
        with self._ctx.uow_factory() as uow:
            session = uow.sessions.get(session_id)
        if user_id is not None and session.user_id != user_id:
            raise SessionNotFound(session_id)

        return RemainingTimeDTO(
            session_id=session_id,
            status=session.status,
            planned_end_at=session.planned_end_at,
            remaining=remaining_time(session, self._ctx.clock()),
        )
