from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from smartlocker.core.entities.session import hours_between
from smartlocker.core.use_cases.lifecycle_context import LifecycleContext


@dataclass(frozen=True, slots=True)
class UserStatsDTO:
    """
    Use-case return type for GET /me/stats

    Only sessions that have ended count toward spending and time.
    """
    user_id: int
    total_sessions: int
    total_spent: Decimal
    total_hours: Decimal
    has_active_session: bool


class GetUserStatsUseCase:
    def __init__(self, *, context: LifecycleContext) -> None:
        self._ctx = context

    def execute(self, *, user_id: int) -> UserStatsDTO:
        with self._ctx.uow_factory() as uow:
            sessions = uow.sessions.list_by_user(user_id)

        ended = [s for s in sessions if s.is_terminal and s.ended_at is not None]
        total_spent = sum((s.amount_due for s in ended), Decimal("0.00"))
        total_hours = sum((hours_between(s.started_at, s.ended_at) for s in ended), Decimal(0))

        return UserStatsDTO(
            user_id=user_id,
            total_sessions=len(ended),
            total_spent=total_spent,
            total_hours=total_hours.quantize(Decimal("0.01")),
            has_active_session=any(s.is_active for s in sessions),
        )
