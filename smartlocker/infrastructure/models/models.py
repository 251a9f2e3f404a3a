from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from smartlocker.core.entities.locker import LockerStatus
from smartlocker.core.entities.session import PaymentStatus, SessionStatus
from smartlocker.infrastructure.database import Base


def _values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class LockerModel(Base):
    __tablename__ = "lockers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    status: Mapped[LockerStatus] = mapped_column(
        Enum(LockerStatus, values_callable=_values, native_enum=False, length=20),
        nullable=False,
        default=LockerStatus.AVAILABLE,
        index=True,
    )
    price_per_hour: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    last_opened_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    current_session_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    sessions = relationship("SessionModel", back_populates="locker")


class SessionModel(Base):
    __tablename__ = "sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    locker_id: Mapped[int] = mapped_column(ForeignKey("lockers.id"), nullable=False, index=True)
    status: Mapped[SessionStatus] = mapped_column(
        Enum(SessionStatus, values_callable=_values, native_enum=False, length=20),
        nullable=False,
        index=True,
    )
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    planned_end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    amount_due: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR")
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, values_callable=_values, native_enum=False, length=20),
        nullable=False,
        default=PaymentStatus.NONE,
    )
    items: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    locked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    locker = relationship("LockerModel", back_populates="sessions")
