"""TabWatcher — keeps the registry in step with tab closures and navigation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from tabtimer.notifications.events import REGISTRY_CHANGED
from tabtimer.timers.models import Persistence

if TYPE_CHECKING:
    from tabtimer.browser.tabs import TabHost
    from tabtimer.notifications.events import EventBus
    from tabtimer.timers.store import TimerStore

logger = logging.getLogger(__name__)


class TabWatcher:
    """Reacts to tab lifecycle events raised outside the poll loop."""

    def __init__(self, store: TimerStore, events: EventBus) -> None:
        self._store = store
        self._events = events

    def attach(self, tabs: TabHost) -> None:
        tabs.on_tab_removed(self.handle_tab_removed)
        tabs.on_url_changed(self.handle_url_changed)

    async def handle_tab_removed(self, tab_id: int) -> int:
        """Drop session timers bound to the closed tab."""
        removed = await self._store.remove_where(
            lambda timer: timer.tab_id == tab_id and timer.persistence == Persistence.SESSION
        )
        if removed:
            logger.info("Tab %d closed — removed %d session timer(s)", tab_id, len(removed))
            self._events.publish(REGISTRY_CHANGED)
        return len(removed)

    async def handle_url_changed(self, tab_id: int, url: str) -> None:
        """Let views refresh their URL-drift hints. The registry is unchanged."""
        if any(timer.tab_id == tab_id and timer.is_pending for timer in self._store.list()):
            logger.debug("Tab %d navigated to %s", tab_id, url)
            self._events.publish(REGISTRY_CHANGED, tabId=tab_id)

    async def handle_shutdown(self) -> int:
        """Drop every session timer before the host goes away."""
        removed = await self._store.remove_where(
            lambda timer: timer.persistence == Persistence.SESSION
        )
        if removed:
            logger.info("Shutdown — discarded %d session timer(s)", len(removed))
        return len(removed)
