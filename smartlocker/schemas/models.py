from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, List

from pydantic import BaseModel, Field

from smartlocker.core.entities.locker import Locker, LockerStatus
from smartlocker.core.entities.session import PaymentStatus, Session, SessionStatus


class LockerOut(BaseModel):
    id: int
    name: str
    status: LockerStatus
    price_per_hour: Decimal
    last_opened_at: datetime | None = None
    current_session_id: int | None = None

    @classmethod
    def from_entity(cls, locker: Locker) -> LockerOut:
        return cls(
            id=locker.locker_id,
            name=locker.name,
            status=locker.status,
            price_per_hour=locker.price_per_hour,
            last_opened_at=locker.last_opened_at,
            current_session_id=locker.current_session_id,
        )

    def to_entity(self) -> Locker:
        return Locker(
            locker_id=self.id,
            name=self.name,
            status=self.status,
            price_per_hour=self.price_per_hour,
            last_opened_at=self.last_opened_at,
            current_session_id=self.current_session_id,
        )


class UpdateLockerIn(BaseModel):
    status: LockerStatus


class SessionOut(BaseModel):
    """Wire shape of a session, field names as the mobile client expects them."""

    id: int
    user_id: int
    locker_id: int
    status: SessionStatus
    started_at: datetime
    planned_end_at: datetime
    ended_at: datetime | None = None
    amount_due: Decimal
    currency: str
    payment_status: PaymentStatus
    items: List[str] = Field(default_factory=list)
    is_locked: bool = False
    locked_at: datetime | None = None

    @classmethod
    def from_entity(cls, session: Session) -> SessionOut:
        return cls(
            id=session.session_id,
            user_id=session.user_id,
            locker_id=session.locker_id,
            status=session.status,
            started_at=session.started_at,
            planned_end_at=session.planned_end_at,
            ended_at=session.ended_at,
            amount_due=session.amount_due,
            currency=session.currency,
            payment_status=session.payment_status,
            items=list(session.items),
            is_locked=session.is_locked,
            locked_at=session.locked_at,
        )

    def to_entity(self) -> Session:
        return Session(
            session_id=self.id,
            user_id=self.user_id,
            locker_id=self.locker_id,
            status=self.status,
            started_at=self.started_at,
            planned_end_at=self.planned_end_at,
            ended_at=self.ended_at,
            amount_due=self.amount_due,
            currency=self.currency,
            payment_status=self.payment_status,
            items=list(self.items),
            is_locked=self.is_locked,
            locked_at=self.locked_at,
        )


class StartSessionIn(BaseModel):
    locker_id: int
    # Range is checked by the use case so it reports InvalidDuration.
    planned_duration_hours: Decimal
    items: List[str] = Field(default_factory=list)


class UpdateSessionIn(BaseModel):
    """
    PUT /sessions/{id}

    status=finished ends the session (payment_status defaults to paid);
    payment_status alone records a payment on an ended session.
    """
    status: SessionStatus | None = None
    payment_status: PaymentStatus | None = None


class SessionItemsIn(BaseModel):
    items: List[str]


class RemainingTimeOut(BaseModel):
    session_id: int
    status: SessionStatus
    planned_end_at: datetime
    remaining_seconds: int


class UserStatsOut(BaseModel):
    user_id: int
    total_sessions: int
    total_spent: Decimal
    total_hours: Decimal
    has_active_session: bool


class LockerStatisticsOut(BaseModel):
    by_status: Dict[LockerStatus, int]


class SweepOut(BaseModel):
    expired: List[int]
    reclaimed: List[int]
