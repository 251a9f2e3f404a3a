from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from smartlocker.core.use_cases.lifecycle_context import utc_now
from smartlocker.core.use_cases.sweep_expired_sessions import (
    ReclaimAbandonedSessionsUseCase,
    SweepExpiredSessionsUseCase,
    SweepResult,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TickResult:
    expired: SweepResult
    reclaimed: SweepResult


class ExpirySweeper:
    """
    Background thread that expires overdue sessions on a fixed interval.

    Each tick runs the regular sweep, then the abandoned-session reclaim. A
    failed tick is logged and the loop keeps going.
    """

    def __init__(
        self,
        *,
        sweep: SweepExpiredSessionsUseCase,
        reclaim: ReclaimAbandonedSessionsUseCase,
        interval_seconds: float = 60.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._sweep = sweep
        self._reclaim = reclaim
        self.interval_seconds = interval_seconds
        self._clock = clock

        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._tick_lock = threading.Lock()

        self.stats = {"ticks": 0, "expired": 0, "reclaimed": 0, "errors": 0, "last_tick": None}

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def tick(self, now: datetime | None = None) -> TickResult:
        # Overlapping ticks (manual trigger + timer) run one after the other.
        with self._tick_lock:
            now = now or self._clock()
            expired = self._sweep.execute(now=now)
            reclaimed = self._reclaim.execute(now=now)

            self.stats["ticks"] += 1
            self.stats["expired"] += expired.count
            self.stats["reclaimed"] += reclaimed.count
            self.stats["errors"] += len(expired.failed_session_ids) + len(reclaimed.failed_session_ids)
            self.stats["last_tick"] = now

        if expired.count or reclaimed.count:
            logger.info("[ExpirySweeper] expired=%d reclaimed=%d", expired.count, reclaimed.count)
        else:
            logger.debug("[ExpirySweeper] nothing to expire")
        return TickResult(expired=expired, reclaimed=reclaimed)

    def start(self) -> None:
        if self.running:
            logger.warning("[ExpirySweeper] already running")
            return

        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True, name="ExpirySweeper")
        self._thread.start()
        logger.info("[ExpirySweeper] started, interval=%ss", self.interval_seconds)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None:
            thread.join(timeout)
            logger.info("[ExpirySweeper] stopped")

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.tick()
            except Exception:
                self.stats["errors"] += 1
                logger.exception("[ExpirySweeper] tick failed")
            self._stop.wait(self.interval_seconds)
