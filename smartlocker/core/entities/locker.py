from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class LockerStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"
    OUT_OF_ORDER = "out_of_order"


@dataclass(slots=True)
class Locker:
    locker_id: int
    name: str
    price_per_hour: Decimal
    status: LockerStatus = LockerStatus.AVAILABLE
    last_opened_at: datetime | None = None
    current_session_id: int | None = None

    @property
    def is_available(self) -> bool:
        return self.status is LockerStatus.AVAILABLE

    def occupy(self, session_id: int) -> None:
        if not self.is_available:
            raise ValueError(f"Locker {self.locker_id} is not available")
        self.status = LockerStatus.OCCUPIED
        self.current_session_id = session_id

    def release(self) -> None:
        self.status = LockerStatus.AVAILABLE
        self.current_session_id = None

    def mark_opened(self, at: datetime) -> None:
        self.last_opened_at = at
