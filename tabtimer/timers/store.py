"""TimerStore — in-memory timer registry backed by a durable and a session tier."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from tabtimer.timers.janitor import is_expired
from tabtimer.timers.models import Persistence, Timer

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import timedelta

    from tabtimer.browser.tabs import TabHost
    from tabtimer.storage import StorageArea

logger = logging.getLogger(__name__)

TIMERS_KEY = "timers"


class TimerStore:
    """Owns the working set of timers for the lifetime of the process.

    Every mutation is applied in memory first and then persisted. Persisting
    splits the working set by tier: ``browser`` and ``tab`` timers go to the
    durable area, ``session`` timers to the ephemeral area. With no ephemeral
    area, session timers live in memory only.

    Args:
        durable: Storage area that survives restarts.
        ephemeral: Storage area discarded at session end, or None.
        tabs: Used at load time to drop timers whose tab is gone.
    """

    def __init__(
        self,
        durable: StorageArea,
        ephemeral: StorageArea | None,
        tabs: TabHost,
    ) -> None:
        self._durable = durable
        self._ephemeral = ephemeral
        self._tabs = tabs
        self._timers: list[Timer] = []

    # -- Loading ---------------------------------------------------------------

    async def load(
        self,
        retention: timedelta | None = None,
        now: datetime | None = None,
    ) -> list[Timer]:
        """Rebuild the working set from both tiers.

        Drops executed timers past *retention* and tab-bound timers whose tab
        cannot be resolved, then writes the cleaned result back. Any storage
        failure leaves an empty working set.
        """
        now = now or datetime.now(UTC)
        try:
            records = list(await self._durable.get(TIMERS_KEY) or [])
            if self._ephemeral is not None:
                records.extend(await self._ephemeral.get(TIMERS_KEY) or [])

            timers = _dedupe(_parse_records(records))
            kept: list[Timer] = []
            for timer in timers:
                if is_expired(timer, retention, now):
                    logger.info("Dropping expired timer %s", timer.id)
                    continue
                if timer.is_tab_bound and await self._tabs.get_tab(timer.tab_id) is None:
                    logger.info(
                        "Dropping %s timer %s — tab %d no longer exists",
                        timer.persistence,
                        timer.id,
                        timer.tab_id,
                    )
                    continue
                kept.append(timer)
            self._timers = kept
            await self._write()
        except Exception:
            logger.exception("Failed to load timers — starting with an empty registry")
            self._timers = []
        logger.info("Loaded %d timer(s)", len(self._timers))
        return self.list()

    # -- Queries ---------------------------------------------------------------

    def list(self) -> list[Timer]:
        """Return copies of all timers; mutating them does not affect the store."""
        return [timer.copy() for timer in self._timers]

    def get(self, timer_id: str) -> Timer | None:
        timer = self._find(timer_id)
        return timer.copy() if timer else None

    def due(self, now: datetime | None = None) -> list[Timer]:
        """Pending timers whose target time has passed, earliest first."""
        now = now or datetime.now(UTC)
        due = [timer.copy() for timer in self._timers if timer.is_due(now)]
        return sorted(due, key=lambda t: t.target_time)

    def __len__(self) -> int:
        return len(self._timers)

    def __contains__(self, timer_id: object) -> bool:
        return any(timer.id == timer_id for timer in self._timers)

    # -- Mutations -------------------------------------------------------------

    async def add(self, timer: Timer) -> bool:
        """Add a timer. Returns False if its id is already registered."""
        if timer.id in self:
            logger.warning("Refusing duplicate timer id: %s", timer.id)
            return False
        self._timers.append(timer.copy())
        await self.persist()
        logger.info("Added timer %s (%s at %s)", timer.id, timer.action_type, timer.target_time)
        return True

    async def update(self, timer: Timer) -> bool:
        """Replace the timer with the same id. Returns False if not found."""
        for index, existing in enumerate(self._timers):
            if existing.id == timer.id:
                self._timers[index] = timer.copy()
                await self.persist()
                logger.info("Updated timer %s", timer.id)
                return True
        return False

    async def replace_all(self, timers: Iterable[Timer]) -> None:
        """Swap the whole working set (duplicate ids keep the last record).

        A timer that has already run keeps its recorded outcome, so a stale
        record cannot return it to pending.
        """
        finished = {timer.id: timer for timer in self._timers if not timer.is_pending}
        replacement = _dedupe([timer.copy() for timer in timers], keep="last")
        for timer in replacement:
            done = finished.get(timer.id)
            if done is None:
                continue
            if timer.status != done.status:
                logger.info("Keeping recorded outcome of timer %s (%s)", timer.id, done.status)
            timer.status = done.status
            timer.executed_at = done.executed_at
        self._timers = replacement
        await self.persist()
        logger.info("Replaced registry with %d timer(s)", len(self._timers))

    async def remove(self, timer_id: str) -> bool:
        """Delete a timer. Returns False if it was not registered."""
        removed = await self.remove_where(lambda timer: timer.id == timer_id)
        return bool(removed)

    async def remove_where(self, predicate: Callable[[Timer], bool]) -> list[Timer]:
        """Delete every timer matching *predicate*; persist only if something changed."""
        removed = [timer for timer in self._timers if predicate(timer)]
        if not removed:
            return []
        self._timers = [timer for timer in self._timers if not predicate(timer)]
        await self.persist()
        logger.info("Removed %d timer(s): %s", len(removed), [t.id for t in removed])
        return removed

    async def record_outcome(
        self,
        timer_id: str,
        success: bool,
        at: datetime | None = None,
    ) -> Timer | None:
        """Move a pending timer to its terminal status and persist.

        Returns the updated timer, or None if it was removed or already
        terminal in the meantime.
        """
        timer = self._find(timer_id)
        if timer is None or not timer.is_pending:
            logger.info("Outcome for timer %s not recorded — no longer pending", timer_id)
            return None
        timer.complete(success, at)
        await self.persist()
        return timer.copy()

    # -- Persistence -----------------------------------------------------------

    async def persist(self) -> None:
        """Write the working set to the storage tiers. Failures are logged only."""
        try:
            await self._write()
        except Exception:
            logger.exception("Failed to persist timers")

    async def _write(self) -> None:
        durable = [
            timer.to_dict()
            for timer in self._timers
            if timer.persistence in (Persistence.BROWSER, Persistence.TAB)
        ]
        session = [
            timer.to_dict() for timer in self._timers if timer.persistence == Persistence.SESSION
        ]
        await self._durable.set(TIMERS_KEY, durable)
        if self._ephemeral is not None:
            await self._ephemeral.set(TIMERS_KEY, session)

    def _find(self, timer_id: str) -> Timer | None:
        return next((timer for timer in self._timers if timer.id == timer_id), None)


def _parse_records(records: list) -> list[Timer]:
    timers = []
    for record in records:
        try:
            timers.append(Timer.from_dict(record))
        except (KeyError, TypeError, ValueError) as exc:
            timer_id = record.get("id") if isinstance(record, dict) else None
            logger.warning("Skipping malformed timer record %s: %s", timer_id, exc)
    return timers


def _dedupe(timers: list[Timer], keep: str = "first") -> list[Timer]:
    seen: dict[str, Timer] = {}
    for timer in timers:
        if timer.id in seen and keep == "first":
            continue
        seen[timer.id] = timer
    return list(seen.values())

