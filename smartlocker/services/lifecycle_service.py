from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.engine import Engine

from smartlocker.core.locks import KeyedLockManager
from smartlocker.core.repositories.unit_of_work import UnitOfWork
from smartlocker.core.use_cases.delete_session import DeleteSessionUseCase
from smartlocker.core.use_cases.end_session import EndSessionUseCase
from smartlocker.core.use_cases.get_locker import GetLockerUseCase, ListLockersUseCase
from smartlocker.core.use_cases.get_locker_statistics import GetLockerStatisticsUseCase
from smartlocker.core.use_cases.get_remaining_time import GetRemainingTimeUseCase
from smartlocker.core.use_cases.get_session import GetSessionUseCase, ListUserSessionsUseCase
from smartlocker.core.use_cases.get_user_stats import GetUserStatsUseCase
from smartlocker.core.use_cases.lifecycle_context import LifecycleContext, utc_now
from smartlocker.core.use_cases.lock_session import LockSessionUseCase
from smartlocker.core.use_cases.open_locker import OpenLockerUseCase
from smartlocker.core.use_cases.reconcile_locker_states import ReconcileLockerStatesUseCase
from smartlocker.core.use_cases.record_payment import RecordPaymentUseCase
from smartlocker.core.use_cases.set_locker_status import SetLockerStatusUseCase
from smartlocker.core.use_cases.start_session import StartSessionUseCase
from smartlocker.core.use_cases.sweep_expired_sessions import (
    ReclaimAbandonedSessionsUseCase,
    SweepExpiredSessionsUseCase,
)
from smartlocker.core.use_cases.update_session_items import UpdateSessionItemsUseCase
from smartlocker.infrastructure.config import Settings
from smartlocker.infrastructure.database import build_engine, build_session_factory, create_schema
from smartlocker.infrastructure.repositories.event_repository_jsonl_impl import JsonlEventRepositoryImpl
from smartlocker.infrastructure.repositories.unit_of_work_impl import SqlAlchemyUnitOfWork
from smartlocker.infrastructure.seed import load_locker_catalogue, seed_lockers
from smartlocker.services.expiry_sweeper import ExpirySweeper
from smartlocker.services.notifier import EventBus, EventLogSubscriber

logger = logging.getLogger(__name__)


class LifecycleService:
    """
    Composition root: builds every collaborator once and wires the use cases.

    Construct one per process, call bootstrap() then start(), and shutdown()
    on the way out.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        engine: Engine | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.settings = settings
        self.engine = engine or build_engine(settings.database_url)
        create_schema(self.engine)
        self.session_factory = build_session_factory(self.engine)

        self.bus = EventBus()
        if settings.event_log_path is not None:
            self.bus.subscribe(EventLogSubscriber(JsonlEventRepositoryImpl(file_path=settings.event_log_path)))

        self.context = LifecycleContext(
            uow_factory=self.unit_of_work,
            locks=KeyedLockManager(),
            clock=clock,
            publisher=self.bus,
        )
        ctx = self.context

        self.start_session = StartSessionUseCase(
            context=ctx,
            max_duration_hours=settings.max_session_hours,
            currency=settings.currency,
        )
        self.end_session = EndSessionUseCase(context=ctx)
        self.sweep_expired = SweepExpiredSessionsUseCase(context=ctx)
        self.reclaim_abandoned = ReclaimAbandonedSessionsUseCase(
            context=ctx,
            abandoned_after=timedelta(hours=settings.abandoned_after_hours),
        )
        self.remaining_time = GetRemainingTimeUseCase(context=ctx)
        self.lock_session = LockSessionUseCase(context=ctx)
        self.update_items = UpdateSessionItemsUseCase(context=ctx)
        self.record_payment = RecordPaymentUseCase(context=ctx)
        self.delete_session = DeleteSessionUseCase(context=ctx)
        self.get_session = GetSessionUseCase(context=ctx)
        self.list_user_sessions = ListUserSessionsUseCase(context=ctx)
        self.user_stats = GetUserStatsUseCase(context=ctx)

        self.get_locker = GetLockerUseCase(context=ctx)
        self.list_lockers = ListLockersUseCase(context=ctx)
        self.open_locker = OpenLockerUseCase(context=ctx)
        self.set_locker_status = SetLockerStatusUseCase(context=ctx)
        self.locker_statistics = GetLockerStatisticsUseCase(context=ctx)
        self.reconcile = ReconcileLockerStatesUseCase(context=ctx)

        self.sweeper = ExpirySweeper(
            sweep=self.sweep_expired,
            reclaim=self.reclaim_abandoned,
            interval_seconds=settings.sweep_interval_seconds,
            clock=clock,
        )

    def unit_of_work(self) -> UnitOfWork:
        return SqlAlchemyUnitOfWork(self.session_factory)

    def bootstrap(self) -> None:
        """
        Seed the catalogue into an empty registry, repair locker occupancy from
        persisted sessions, then reclaim sessions abandoned while the process
        was down.
        """
        if self.settings.seed_lockers and self.settings.locker_catalogue_path.exists():
            seed_lockers(self.unit_of_work(), load_locker_catalogue(self.settings.locker_catalogue_path))

        reconciled = self.reconcile.execute()
        reclaimed = self.reclaim_abandoned.execute()
        logger.info(
            "Bootstrap done: %d locker(s) reconciled, %d abandoned session(s) reclaimed",
            len(reconciled.repaired_locker_ids), reclaimed.count,
        )

    def start(self) -> None:
        if self.settings.sweeper_enabled:
            self.sweeper.start()

    def shutdown(self) -> None:
        self.sweeper.stop()
        self.engine.dispose()
