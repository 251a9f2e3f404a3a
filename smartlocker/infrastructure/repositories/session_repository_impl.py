from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session as DbSession

from smartlocker.core.entities.session import PaymentStatus, Session, SessionStatus
from smartlocker.core.errors import SessionNotFound
from smartlocker.core.repositories.session_repository import SessionRepository
from smartlocker.infrastructure.models.models import SessionModel
from smartlocker.infrastructure.repositories.storage_errors import as_utc, translate_storage_errors


class SessionRepositoryImpl(SessionRepository):
    def __init__(self, db: DbSession) -> None:
        self._db = db

    @staticmethod
    def _to_entity(row: SessionModel) -> Session:
        return Session(
            session_id=row.id,
            user_id=row.user_id,
            locker_id=row.locker_id,
            status=SessionStatus(row.status),
            started_at=as_utc(row.started_at),
            planned_end_at=as_utc(row.planned_end_at),
            ended_at=as_utc(row.ended_at),
            amount_due=row.amount_due,
            currency=row.currency,
            payment_status=PaymentStatus(row.payment_status),
            items=list(row.items or []),
            is_locked=row.is_locked,
            locked_at=as_utc(row.locked_at),
        )

    @staticmethod
    def _apply(row: SessionModel, session: Session) -> None:
        row.user_id = session.user_id
        row.locker_id = session.locker_id
        row.status = session.status
        row.started_at = session.started_at
        row.planned_end_at = session.planned_end_at
        row.ended_at = session.ended_at
        row.amount_due = session.amount_due
        row.currency = session.currency
        row.payment_status = session.payment_status
        row.items = list(session.items)
        row.is_locked = session.is_locked
        row.locked_at = session.locked_at

    @translate_storage_errors
    def create(self, session: Session) -> Session:
        row = SessionModel()
        self._apply(row, session)
        self._db.add(row)
        self._db.flush()

        session.session_id = row.id
        return session

    @translate_storage_errors
    def find(self, session_id: int) -> Session | None:
        row = self._db.get(SessionModel, session_id)
        if row is None:
            return None
        return self._to_entity(row)

    @translate_storage_errors
    def update(self, session: Session) -> Session:
        row = self._db.get(SessionModel, session.session_id) if session.session_id is not None else None
        if row is None:
            raise SessionNotFound(session.session_id)

        self._apply(row, session)
        self._db.flush()
        return session

    @translate_storage_errors
    def delete(self, session_id: int) -> None:
        row = self._db.get(SessionModel, session_id)
        if row is None:
            raise SessionNotFound(session_id)
        self._db.delete(row)
        self._db.flush()

    @translate_storage_errors
    def find_active_by_user(self, user_id: int) -> Session | None:
        row = self._db.execute(
            select(SessionModel)
            .where(SessionModel.user_id == user_id, SessionModel.status == SessionStatus.ACTIVE)
            .order_by(SessionModel.started_at)
            .limit(1)
        ).scalar_one_or_none()
        return self._to_entity(row) if row is not None else None

    @translate_storage_errors
    def list_by_user(self, user_id: int, status: SessionStatus | None = None) -> list[Session]:
        query = select(SessionModel).where(SessionModel.user_id == user_id)
        if status is not None:
            query = query.where(SessionModel.status == status)
        rows = self._db.execute(query.order_by(SessionModel.started_at.desc(), SessionModel.id.desc())).scalars()
        return [self._to_entity(row) for row in rows]

    @translate_storage_errors
    def list_by_locker(self, locker_id: int) -> list[Session]:
        rows = self._db.execute(
            select(SessionModel).where(SessionModel.locker_id == locker_id).order_by(SessionModel.started_at.desc())
        ).scalars()
        return [self._to_entity(row) for row in rows]

    @translate_storage_errors
    def list_active(self) -> list[Session]:
        rows = self._db.execute(
            select(SessionModel).where(SessionModel.status == SessionStatus.ACTIVE).order_by(SessionModel.planned_end_at)
        ).scalars()
        return [self._to_entity(row) for row in rows]
