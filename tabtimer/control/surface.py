"""Control surface — the request/response protocol views use to drive the engine."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from tabtimer.notifications.events import REGISTRY_CHANGED, SETTINGS_CHANGED
from tabtimer.timers.models import Timer, TimerStatus

if TYPE_CHECKING:
    from tabtimer.notifications.events import EventBus
    from tabtimer.settings_store import SettingsStore
    from tabtimer.timers.store import TimerStore

logger = logging.getLogger(__name__)

# Handler signature: async (request: dict) -> response dict
ControlHandler = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]


class ControlSurface:
    """Dispatches ``{"action": <kind>, ...}`` requests to registered handlers.

    Every handler answers with a plain dict; failures are reported as
    ``{"success": False, "error": ...}`` rather than raised.

    Usage::

        surface = ControlSurface(store, settings_store, events)
        await surface.handle({"action": "list-timers"})
    """

    def __init__(
        self,
        store: TimerStore,
        settings_store: SettingsStore,
        events: EventBus,
    ) -> None:
        self._store = store
        self._settings = settings_store
        self._events = events
        self._handlers: dict[str, ControlHandler] = {
            "add-timer": self._add_timer,
            "update-timer": self._update_timer,
            "bulk-update-timers": self._bulk_update_timers,
            "cancel-timer": self._cancel_timer,
            "list-timers": self._list_timers,
            "push-settings": self._push_settings,
            "get-settings": self._get_settings,
        }

    @property
    def actions(self) -> list[str]:
        """All request kinds this surface understands."""
        return list(self._handlers)

    async def handle(self, request: dict[str, Any]) -> dict[str, Any]:
        """Route one request to its handler."""
        action = request.get("action") if isinstance(request, dict) else None
        handler = self._handlers.get(action) if isinstance(action, str) else None
        if handler is None:
            logger.warning("Unknown control action: %r", action)
            return {"success": False, "error": "Unknown action"}
        try:
            return await handler(request)
        except Exception:
            logger.exception("Control action failed: %s", action)
            return {"success": False, "error": "Internal error"}

    # -- Timers ----------------------------------------------------------------

    def _parse_timer(self, record: Any) -> Timer:
        return Timer.from_dict(
            record,
            fire_offset_minutes=self._settings.current.fire_offset_minutes,
        )

    async def _add_timer(self, request: dict[str, Any]) -> dict[str, Any]:
        try:
            timer = self._parse_timer(request.get("timer"))
        except (KeyError, TypeError, ValueError) as exc:
            return _invalid_timer(exc)
        timer.status = TimerStatus.PENDING
        timer.executed_at = None
        if not await self._store.add(timer):
            return {"success": False, "error": "duplicate id"}
        self._events.publish(REGISTRY_CHANGED)
        return {"success": True, "timerId": timer.id}

    async def _update_timer(self, request: dict[str, Any]) -> dict[str, Any]:
        try:
            timer = self._parse_timer(request.get("timer"))
        except (KeyError, TypeError, ValueError) as exc:
            return _invalid_timer(exc)
        existing = self._store.get(timer.id)
        if existing is None:
            return {"success": False, "error": "not found"}
        if not existing.is_pending:
            return {"success": False, "error": "timer already executed"}
        timer.status = TimerStatus.PENDING
        timer.executed_at = None
        if not await self._store.update(timer):
            return {"success": False, "error": "not found"}
        self._events.publish(REGISTRY_CHANGED)
        return {"success": True}

    async def _bulk_update_timers(self, request: dict[str, Any]) -> dict[str, Any]:
        records = request.get("timers")
        if not isinstance(records, list):
            return {"success": False, "error": "timers must be a list"}
        try:
            timers = [self._parse_timer(record) for record in records]
        except (KeyError, TypeError, ValueError) as exc:
            return _invalid_timer(exc)
        await self._store.replace_all(timers)
        self._events.publish(REGISTRY_CHANGED)
        return {"success": True}

    async def _cancel_timer(self, request: dict[str, Any]) -> dict[str, Any]:
        timer_id = request.get("timerId")
        if await self._store.remove(str(timer_id)):
            self._events.publish(REGISTRY_CHANGED)
        return {"success": True}

    async def _list_timers(self, request: dict[str, Any]) -> dict[str, Any]:
        return {"timers": [timer.to_dict() for timer in self._store.list()]}

    # -- Settings --------------------------------------------------------------

    async def _push_settings(self, request: dict[str, Any]) -> dict[str, Any]:
        values = request.get("settings")
        if not isinstance(values, dict):
            return {"success": False, "error": "settings must be an object"}
        try:
            await self._settings.update(values)
        except ValidationError as exc:
            logger.warning("Rejected settings update: %s", _describe(exc))
            return {"success": False, "error": _describe(exc)}
        current = await self._settings.load()
        self._events.publish(SETTINGS_CHANGED, settings=current.to_dict())
        return {"success": True}

    async def _get_settings(self, request: dict[str, Any]) -> dict[str, Any]:
        return {"settings": self._settings.current.to_dict()}


def _invalid_timer(exc: Exception) -> dict[str, Any]:
    logger.warning("Rejected timer record: %s", exc)
    return {"success": False, "error": f"invalid timer: {exc}"}


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
