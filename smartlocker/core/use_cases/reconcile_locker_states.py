from __future__ import annotations

import logging
from dataclasses import dataclass

from smartlocker.core.entities.locker import LockerStatus
from smartlocker.core.entities.session import Session
from smartlocker.core.locks import locker_key
from smartlocker.core.use_cases.lifecycle_context import LifecycleContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    repaired_locker_ids: tuple[int, ...]


class ReconcileLockerStatesUseCase:
    """
    Recompute locker occupancy from the active sessions.

    A locker is OCCUPIED iff an active session references it. Lockers under
    maintenance or out of order with no active session are left alone.
    Meant to run at startup, before the sweeper and the API accept work.
    """

    def __init__(self, *, context: LifecycleContext) -> None:
        self._ctx = context

    def execute(self) -> ReconcileResult:
        with self._ctx.uow_factory() as uow:
            locker_ids = [locker.locker_id for locker in uow.lockers.list_all()]

        repaired: list[int] = []
        with self._ctx.locks.hold(*(locker_key(i) for i in locker_ids)):
            with self._ctx.uow_factory() as uow:
                active_by_locker: dict[int, list[Session]] = {}
                for session in uow.sessions.list_active():
                    active_by_locker.setdefault(session.locker_id, []).append(session)

                for locker in uow.lockers.list_all():
                    sessions = sorted(active_by_locker.get(locker.locker_id, []), key=lambda s: s.started_at)
                    if len(sessions) > 1:
                        logger.error(
                            "Locker %s is referenced by %d active sessions: %s",
                            locker.locker_id, len(sessions), [s.session_id for s in sessions],
                        )

                    if sessions:
                        holder = sessions[0]
                        if locker.status is LockerStatus.OCCUPIED and locker.current_session_id == holder.session_id:
                            continue
                        locker.status = LockerStatus.OCCUPIED
                        locker.current_session_id = holder.session_id
                    elif locker.status is LockerStatus.OCCUPIED or locker.current_session_id is not None:
                        locker.release()
                    else:
                        continue

                    uow.lockers.upsert(locker)
                    repaired.append(locker.locker_id)

                uow.commit()

        if repaired:
            logger.warning("Reconciled locker state for lockers %s", repaired)
        return ReconcileResult(repaired_locker_ids=tuple(repaired))
