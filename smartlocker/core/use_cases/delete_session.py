from __future__ import annotations

import logging

from smartlocker.core.errors import SessionStillActive
from smartlocker.core.locks import session_key
from smartlocker.core.use_cases.lifecycle_context import LifecycleContext

logger = logging.getLogger(__name__)


class DeleteSessionUseCase:
    """Administrative removal of a terminal session record."""

    def __init__(self, *, context: LifecycleContext) -> None:
        self._ctx = context

    def execute(self, *, session_id: int) -> None:
        with self._ctx.locks.hold(session_key(session_id)):
            with self._ctx.uow_factory() as uow:
                session = uow.sessions.get(session_id)
                if session.is_active:
                    raise SessionStillActive(session_id)
                uow.sessions.delete(session_id)
                uow.commit()

        logger.warning("Session %s deleted", session_id)
