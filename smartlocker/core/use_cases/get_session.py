from __future__ import annotations

from smartlocker.core.entities.session import Session, SessionStatus
from smartlocker.core.errors import SessionNotFound
from smartlocker.core.use_cases.lifecycle_context import LifecycleContext


class GetSessionUseCase:
    def __init__(self, *, context: LifecycleContext) -> None:
        self._ctx = context

    def execute(self, *, session_id: int, user_id: int | None = None) -> Session:
        with self._ctx.uow_factory() as uow:
            session = uow.sessions.get(session_id)
        if user_id is not None and session.user_id != user_id:
            raise SessionNotFound(session_id)
        return session


class ListUserSessionsUseCase:
    def __init__(self, *, context: LifecycleContext) -> None:
        self._ctx = context

    def execute(self, *, user_id: int, status: SessionStatus | None = None) -> list[Session]:
        with self._ctx.uow_factory() as uow:
            return uow.sessions.list_by_user(user_id, status=status)
