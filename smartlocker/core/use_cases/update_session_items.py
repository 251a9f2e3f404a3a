from __future__ import annotations

from collections.abc import Iterable

from smartlocker.core.entities.session import Session
from smartlocker.core.errors import SessionNotActive, SessionNotFound
from smartlocker.core.locks import session_key
from smartlocker.core.use_cases.lifecycle_context import LifecycleContext


class UpdateSessionItemsUseCase:
    def __init__(self, *, context: LifecycleContext) -> None:
        self._ctx = context

    def execute(self, *, session_id: int, user_id: int, items: Iterable[str]) -> Session:
        with self._ctx.locks.hold(session_key(session_id)):
            with self._ctx.uow_factory() as uow:
                session = uow.sessions.get(session_id)
                if session.user_id != user_id:
                    raise SessionNotFound(session_id)
                if not session.is_active:
                    raise SessionNotActive(session_id, session.status.value)

                session.items = [item for item in items if item]
                uow.sessions.update(session)
                uow.commit()
        return session
