from __future__ import annotations

from abc import ABC, abstractmethod
from types import TracebackType

from smartlocker.core.repositories.locker_repository import LockerRepository
from smartlocker.core.repositories.session_repository import SessionRepository


class UnitOfWork(ABC):
    """
    Groups locker and session writes so they become visible together or not at all.

    Usage:
        with uow_factory() as uow:
            ...
            uow.commit()

    Leaving the block without commit() rolls back.
    """

    lockers: LockerRepository
    sessions: SessionRepository

    def __enter__(self) -> UnitOfWork:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.rollback()
        self.close()

    @abstractmethod
    def commit(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def rollback(self) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass
