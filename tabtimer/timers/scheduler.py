"""SchedulerLoop — APScheduler interval jobs that fire due timers and sweep old ones."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from tabtimer.config import settings
from tabtimer.notifications.events import REGISTRY_CHANGED
from tabtimer.timers.janitor import is_expired

if TYPE_CHECKING:
    from tabtimer.notifications.events import EventBus
    from tabtimer.settings_store import SettingsStore
    from tabtimer.timers.engine import ExecutionEngine, FiringResult
    from tabtimer.timers.store import TimerStore

logger = logging.getLogger(__name__)

FIRE_JOB_ID = "fire-due-timers"
SWEEP_JOB_ID = "sweep-executed-timers"


class SchedulerLoop:
    """Polls the registry for due timers and for executed timers to expire.

    Args:
        store: TimerStore to scan.
        engine: ExecutionEngine that fires each due timer.
        settings_store: Source of the auto-delete window.
        events: EventBus notified when the sweep removes timers.
        poll_interval: Seconds between due-timer scans.
        sweep_interval: Seconds between auto-delete sweeps.
    """

    def __init__(
        self,
        store: TimerStore,
        engine: ExecutionEngine,
        settings_store: SettingsStore,
        events: EventBus,
        *,
        poll_interval: float | None = None,
        sweep_interval: float | None = None,
    ) -> None:
        self._store = store
        self._engine = engine
        self._settings = settings_store
        self._events = events
        self._poll_interval = poll_interval or settings.poll_interval_seconds
        self._sweep_interval = sweep_interval or settings.sweep_interval_seconds
        self._scheduler = AsyncIOScheduler(timezone=UTC)
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Start (or restart) both interval jobs. Any previous jobs are replaced."""
        if not self._running:
            # A stopped scheduler finishes shutting down on a later loop
            # iteration and is never reused
            self._scheduler = AsyncIOScheduler(timezone=UTC)
        self._scheduler.remove_all_jobs()
        self._scheduler.add_job(
            self.tick,
            trigger=IntervalTrigger(seconds=self._poll_interval, timezone=UTC),
            id=FIRE_JOB_ID,
            name="Fire due timers",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.add_job(
            self.sweep,
            trigger=IntervalTrigger(seconds=self._sweep_interval, timezone=UTC),
            id=SWEEP_JOB_ID,
            name="Sweep executed timers",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        if not self._running:
            self._scheduler.start()
            self._running = True
        logger.info(
            "Scheduler loop started (poll=%.1fs, sweep=%.0fs)",
            self._poll_interval,
            self._sweep_interval,
        )

    async def stop(self) -> None:
        """Shut down the scheduler."""
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler loop stopped")

    # -- Jobs ------------------------------------------------------------------

    async def tick(self, now: datetime | None = None) -> list[FiringResult]:
        """Fire every due timer, one at a time, earliest first."""
        now = now or datetime.now(UTC)
        results: list[FiringResult] = []
        for candidate in self._store.due(now):
            # An earlier attempt in this tick may have awaited long enough for
            # the timer to be cancelled or edited.
            timer = self._store.get(candidate.id)
            if timer is None or not timer.is_due(now):
                continue
            result = await self._engine.execute(timer)
            if result is not None:
                results.append(result)
        return results

    async def sweep(self, now: datetime | None = None) -> int:
        """Remove executed timers older than the auto-delete window."""
        now = now or datetime.now(UTC)
        window = self._settings.current.retention
        if window is None:
            return 0
        removed = await self._store.remove_where(lambda timer: is_expired(timer, window, now))
        if removed:
            logger.info("Auto-deleted %d executed timer(s)", len(removed))
            self._events.publish(REGISTRY_CHANGED)
        return len(removed)
