from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from smartlocker.core.entities.locker import Locker, LockerStatus
from smartlocker.core.repositories.locker_repository import LockerRepository
from smartlocker.infrastructure.models.models import LockerModel
from smartlocker.infrastructure.repositories.storage_errors import as_utc, translate_storage_errors


class LockerRepositoryImpl(LockerRepository):
    """
    Simple SQLAlchemy implementation for Locker.

    Writes are flushed, never committed: the unit of work owns the transaction.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    @staticmethod
    def _to_entity(row: LockerModel) -> Locker:
        return Locker(
            locker_id=row.id,
            name=row.name,
            status=LockerStatus(row.status),
            price_per_hour=row.price_per_hour,
            last_opened_at=as_utc(row.last_opened_at),
            current_session_id=row.current_session_id,
        )

    @translate_storage_errors
    def find(self, locker_id: int) -> Locker | None:
        row = self._db.get(LockerModel, locker_id)
        if row is None:
            return None
        return self._to_entity(row)

    @translate_storage_errors
    def list_all(self) -> list[Locker]:
        rows = self._db.execute(select(LockerModel).order_by(LockerModel.id)).scalars().all()
        return [self._to_entity(row) for row in rows]

    @translate_storage_errors
    def list_available(self) -> list[Locker]:
        rows = self._db.execute(
            select(LockerModel).where(LockerModel.status == LockerStatus.AVAILABLE)
        ).scalars().all()
        return [self._to_entity(row) for row in rows]

    @translate_storage_errors
    def upsert(self, locker: Locker) -> None:
        row = self._db.get(LockerModel, locker.locker_id)
        if row is None:
            row = LockerModel(id=locker.locker_id)

        row.name = locker.name
        row.status = locker.status
        row.price_per_hour = locker.price_per_hour
        row.last_opened_at = locker.last_opened_at
        row.current_session_id = locker.current_session_id

        self._db.add(row)
        self._db.flush()
