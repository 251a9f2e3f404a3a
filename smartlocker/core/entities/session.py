from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

CENTS = Decimal("0.01")
SECONDS_PER_HOUR = Decimal(3600)


class SessionStatus(str, Enum):
    ACTIVE = "active"
    FINISHED = "finished"
    EXPIRED = "expired"
    # Defined for wire compatibility; no transition produces it.
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    NONE = "none"
    PAID = "paid"
    FAILED = "failed"


def quantize_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def hours_between(start: datetime, end: datetime) -> Decimal:
    """Elapsed hours as a Decimal, never negative."""
    seconds = Decimal(str((end - start).total_seconds()))
    return max(Decimal(0), seconds / SECONDS_PER_HOUR)


@dataclass(slots=True)
class Session:
    user_id: int
    locker_id: int
    started_at: datetime
    planned_end_at: datetime
    amount_due: Decimal
    status: SessionStatus = SessionStatus.ACTIVE
    payment_status: PaymentStatus = PaymentStatus.NONE
    currency: str = "EUR"
    ended_at: datetime | None = None
    items: list[str] = field(default_factory=list)
    is_locked: bool = False
    locked_at: datetime | None = None
    session_id: int | None = None

    @property
    def is_active(self) -> bool:
        return self.status is SessionStatus.ACTIVE

    @property
    def is_terminal(self) -> bool:
        return self.status in (SessionStatus.FINISHED, SessionStatus.EXPIRED, SessionStatus.CANCELLED)

    @property
    def planned_duration_hours(self) -> Decimal:
        return hours_between(self.started_at, self.planned_end_at)

    def remaining_time(self, now: datetime) -> timedelta:
        """
        Time left until the planned end, floored at zero.

        Zero only means "over time" for display; the sweeper may not have
        expired the session yet.
        """
        remaining = self.planned_end_at - now
        return remaining if remaining > timedelta(0) else timedelta(0)

    def is_overdue(self, now: datetime, grace: timedelta = timedelta(0)) -> bool:
        return self.is_active and now >= self.planned_end_at + grace

    def finish(self, *, ended_at: datetime, price_per_hour: Decimal, payment_status: PaymentStatus) -> None:
        """
        Terminate the session explicitly.

        The amount is recomputed only when the session ends before its planned
        end, so an early finish never costs more than what was quoted at start.
        """
        actual_hours = hours_between(self.started_at, ended_at)
        if actual_hours < self.planned_duration_hours:
            self.amount_due = min(self.amount_due, quantize_money(actual_hours * price_per_hour))

        self.status = SessionStatus.FINISHED
        self.ended_at = ended_at
        self.payment_status = payment_status

    def expire(self) -> None:
        # Ended at the planned end, not at sweep time: sweeper latency is never billed.
        self.status = SessionStatus.EXPIRED
        self.ended_at = self.planned_end_at

    def lock(self, at: datetime) -> None:
        self.is_locked = True
        self.locked_at = at
