from __future__ import annotations

from sqlalchemy.orm import sessionmaker

from smartlocker.core.repositories.unit_of_work import UnitOfWork
from smartlocker.infrastructure.repositories.locker_repository_impl import LockerRepositoryImpl
from smartlocker.infrastructure.repositories.session_repository_impl import SessionRepositoryImpl
from smartlocker.infrastructure.repositories.storage_errors import translate_storage_errors


class SqlAlchemyUnitOfWork(UnitOfWork):
    """One SQLAlchemy session (one transaction) per `with` block."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory
        self._db = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        self._db = self._session_factory()
        self.lockers = LockerRepositoryImpl(self._db)
        self.sessions = SessionRepositoryImpl(self._db)
        return self

    @translate_storage_errors
    def commit(self) -> None:
        self._db.commit()

    def rollback(self) -> None:
        self._db.rollback()

    def close(self) -> None:
        self._db.close()
        self._db = None
