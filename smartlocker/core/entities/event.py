from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class EventType(str, Enum):
    SessionStarted = "SessionStarted"
    SessionEnded = "SessionEnded"
    SessionExpired = "SessionExpired"
    SessionReclaimed = "SessionReclaimed"
    SessionLocked = "SessionLocked"
    PaymentRecorded = "PaymentRecorded"
    LockerStatusChanged = "LockerStatusChanged"
    LockerOpened = "LockerOpened"


@dataclass(frozen=True, slots=True)
class LifecycleEvent:
    occurred_at: datetime
    type: EventType
    locker_id: int
    session_id: int | None = None
    user_id: int | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    event_id: UUID = field(default_factory=uuid4)
