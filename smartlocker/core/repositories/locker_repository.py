from __future__ import annotations

from abc import ABC, abstractmethod

from smartlocker.core.entities.locker import Locker, LockerStatus
from smartlocker.core.errors import LockerNotFound


class LockerRepository(ABC):
    """
    Locker registry: source of truth for locker existence and current status.
    """

    @abstractmethod
    def find(self, locker_id: int) -> Locker | None:
        raise NotImplementedError

    @abstractmethod
    def list_all(self) -> list[Locker]:
        raise NotImplementedError

    @abstractmethod
    def list_available(self) -> list[Locker]:
        """All lockers with status AVAILABLE; order is not significant."""
        raise NotImplementedError

    @abstractmethod
    def upsert(self, locker: Locker) -> None:
        raise NotImplementedError

    def get(self, locker_id: int) -> Locker:
        locker = self.find(locker_id)
        if locker is None:
            raise LockerNotFound(locker_id)
        return locker

    def set_status(self, locker_id: int, status: LockerStatus) -> Locker:
        """Overwrite the status without judging the transition; that is the use cases' job."""
        locker = self.get(locker_id)
        locker.status = status
        if status is not LockerStatus.OCCUPIED:
            locker.current_session_id = None
        self.upsert(locker)
        return locker
