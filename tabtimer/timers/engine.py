"""ExecutionEngine — runs the single firing attempt of a due timer."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from tabtimer.config import settings
from tabtimer.notifications.events import TIMER_EXECUTED
from tabtimer.timers.models import ActionKind, TimerStatus, UrlBehavior

if TYPE_CHECKING:
    from tabtimer.browser.tabs import TabHost
    from tabtimer.notifications.events import EventBus
    from tabtimer.notifications.router import NotificationRouter
    from tabtimer.settings_store import SettingsStore
    from tabtimer.timers.models import Timer
    from tabtimer.timers.store import TimerStore

logger = logging.getLogger(__name__)

# Reasons reported in FiringResult
TAB_CLOSED = "tab-closed"
URL_CHANGED = "url-changed"
ACTION_SUCCEEDED = "action-succeeded"
ACTION_FAILED = "action-failed"
ERROR = "error"


@dataclass(frozen=True)
class FiringResult:
    """What happened to one firing attempt."""

    timer_id: str
    success: bool
    reason: str
    recorded: bool = True

    @property
    def status(self) -> TimerStatus:
        return TimerStatus.SUCCESS if self.success else TimerStatus.FAILURE


@dataclass(frozen=True)
class _Outcome:
    success: bool
    reason: str
    title: str
    message: str


class ExecutionEngine:
    """Fires due timers: tab check, URL-drift policy, dispatch, outcome commit.

    Nothing is retried. A timer id is claimed before the first await, so a
    second call for the same timer while an attempt is in flight is ignored.

    Args:
        store: TimerStore that receives the outcome.
        tabs: TabHost used to resolve, open, navigate and act on tabs.
        router: NotificationRouter for the user-facing notification.
        events: EventBus that broadcasts ``timer-executed``.
        settings_store: Source of typing cadence and notification toggles.
        load_timeout: Ceiling for the page-load wait (seconds).
        settle_delay: Extra wait after the page reports load completion.
        channel: Notification channel override (None → router default).
    """

    def __init__(
        self,
        store: TimerStore,
        tabs: TabHost,
        router: NotificationRouter,
        events: EventBus,
        settings_store: SettingsStore,
        *,
        load_timeout: float | None = None,
        settle_delay: float | None = None,
        channel: str | None = None,
    ) -> None:
        self._store = store
        self._tabs = tabs
        self._router = router
        self._events = events
        self._settings = settings_store
        self._load_timeout = (
            settings.load_wait_timeout_seconds if load_timeout is None else load_timeout
        )
        self._settle_delay = settings.load_settle_seconds if settle_delay is None else settle_delay
        self._channel = channel
        self._in_flight: set[str] = set()

    @property
    def in_flight(self) -> frozenset[str]:
        return frozenset(self._in_flight)

    async def execute(self, timer: Timer) -> FiringResult | None:
        """Run one firing attempt for *timer*. Returns None if it was skipped."""
        if not timer.is_pending:
            logger.debug("Skipping timer %s — already %s", timer.id, timer.status)
            return None
        if timer.id in self._in_flight:
            logger.debug("Skipping timer %s — attempt already in flight", timer.id)
            return None
        self._in_flight.add(timer.id)
        try:
            logger.info(
                "Executing timer %s: %s on tab %d (%s)",
                timer.id,
                timer.action_type,
                timer.tab_id,
                timer.selector,
            )
            try:
                outcome = await self._attempt(timer)
            except Exception:
                logger.exception("Timer execution failed: %s", timer.id)
                outcome = _Outcome(
                    False,
                    ERROR,
                    "Timer Execution Failed",
                    f"Error executing timer on: {_label(timer)}",
                )
            return await self._commit(timer, outcome)
        finally:
            self._in_flight.discard(timer.id)

    # -- State machine ---------------------------------------------------------

    async def _attempt(self, timer: Timer) -> _Outcome:
        tab = await self._tabs.get_tab(timer.tab_id)
        if tab is None:
            return _Outcome(
                False,
                TAB_CLOSED,
                "Timer Cancelled",
                f"Timer cancelled - tab was closed: {_label(timer)}",
            )

        target_tab_id = tab.id
        if tab.url != timer.original_url:
            logger.info(
                "Tab %d moved from %s to %s (policy=%s)",
                tab.id,
                timer.original_url,
                tab.url,
                timer.url_behavior,
            )
            if timer.url_behavior == UrlBehavior.CANCEL:
                return _Outcome(
                    False,
                    URL_CHANGED,
                    "Timer Cancelled",
                    f"Timer cancelled - URL changed on: {_label(timer)}",
                )
            if timer.url_behavior == UrlBehavior.NEW_TAB:
                new_tab = await self._tabs.create_tab(timer.original_url, active=False)
                target_tab_id = new_tab.id
            else:
                await self._tabs.navigate(tab.id, timer.original_url)
            await self._wait_for_load(target_tab_id)

        response = await self._dispatch(target_tab_id, timer)
        if response.get("success"):
            verb = "Clicked element" if timer.action_type == ActionKind.CLICK else "Entered text"
            return _Outcome(
                True,
                ACTION_SUCCEEDED,
                "Timer Executed Successfully",
                f"{verb} on: {_label(timer)}",
            )

        logger.warning("Action failed for timer %s: %s", timer.id, response.get("error"))
        if timer.action_type == ActionKind.CLICK:
            return _Outcome(
                False,
                ACTION_FAILED,
                "Element Not Found",
                f"Could not find element on: {_label(timer)}",
            )
        return _Outcome(
            False,
            ACTION_FAILED,
            "Text Entry Failed",
            f"Could not enter text on: {_label(timer)}",
        )

    async def _wait_for_load(self, tab_id: int) -> bool:
        """Wait for the tab to finish loading, up to the ceiling.

        Returns False if the ceiling was hit; the attempt carries on anyway.
        """
        try:
            await asyncio.wait_for(self._tabs.wait_for_load(tab_id), timeout=self._load_timeout)
        except TimeoutError:
            logger.warning(
                "Tab %d did not finish loading within %.1fs — continuing",
                tab_id,
                self._load_timeout,
            )
            return False
        if self._settle_delay:
            await asyncio.sleep(self._settle_delay)
        return True

    async def _dispatch(self, tab_id: int, timer: Timer) -> dict[str, Any]:
        """Send the action to the in-page executor. Transport errors count as failure."""
        request = self._build_request(timer)
        try:
            response = await self._tabs.send_action(tab_id, request)
        except Exception as exc:
            logger.warning("Dispatch to tab %d failed: %s", tab_id, exc)
            return {"success": False, "error": str(exc) or type(exc).__name__}
        if not isinstance(response, dict):
            logger.warning("Malformed executor response from tab %d: %r", tab_id, response)
            return {"success": False, "error": "Malformed response"}
        return response

    def _build_request(self, timer: Timer) -> dict[str, Any]:
        if timer.action_type == ActionKind.CLICK:
            return {"action": "click", "selector": timer.selector}
        current = self._settings.current
        return {
            "action": "enterText",
            "selector": timer.selector,
            "text": timer.text,
            "settings": {
                "clearBeforeTyping": timer.clear_before_typing,
                "typingSpeed": current.typing_speed,
                "postTextEntryDelay": current.post_text_entry_delay,
                "triggerFocusBlur": current.trigger_focus_blur,
            },
        }

    # -- Outcome ---------------------------------------------------------------

    async def _commit(self, timer: Timer, outcome: _Outcome) -> FiringResult:
        recorded = await self._store.record_outcome(
            timer.id, outcome.success, datetime.now(UTC)
        )
        logger.info(
            "Timer %s finished: %s (%s)",
            timer.id,
            "success" if outcome.success else "failure",
            outcome.reason,
        )

        current = self._settings.current
        wanted = current.notify_success if outcome.success else current.notify_failure
        if wanted:
            await self._router.send(outcome.title, outcome.message, channel=self._channel)

        result = FiringResult(
            timer_id=timer.id,
            success=outcome.success,
            reason=outcome.reason,
            recorded=recorded is not None,
        )
        self._events.publish(TIMER_EXECUTED, timerId=timer.id, status=str(result.status))
        return result


def _label(timer: Timer) -> str:
    return timer.tab_title or timer.original_url
