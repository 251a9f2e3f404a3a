from __future__ import annotations

from abc import ABC, abstractmethod

from smartlocker.core.entities.session import Session, SessionStatus
from smartlocker.core.errors import SessionNotFound


class SessionRepository(ABC):
    @abstractmethod
    def create(self, session: Session) -> Session:
        """Persist a new session and return it with a freshly assigned session_id."""
        raise NotImplementedError

    @abstractmethod
    def find(self, session_id: int) -> Session | None:
        raise NotImplementedError

    @abstractmethod
    def update(self, session: Session) -> Session:
        """Overwrite the stored record; raises SessionNotFound for an unknown id."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, session_id: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def find_active_by_user(self, user_id: int) -> Session | None:
        raise NotImplementedError

    @abstractmethod
    def list_by_user(self, user_id: int, status: SessionStatus | None = None) -> list[Session]:
        """Session history of a user, newest first."""
        raise NotImplementedError

    @abstractmethod
    def list_by_locker(self, locker_id: int) -> list[Session]:
        raise NotImplementedError

    @abstractmethod
    def list_active(self) -> list[Session]:
        raise NotImplementedError

    def get(self, session_id: int) -> Session:
        session = self.find(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session
