"""TimerService — wires the browser, stores, engine, scheduler and control server."""

from __future__ import annotations

import logging

from tabtimer.browser.session import BrowserSession
from tabtimer.browser.tabs import PlaywrightTabHost
from tabtimer.config import settings
from tabtimer.control.server import ControlServer
from tabtimer.control.surface import ControlSurface
from tabtimer.notifications.desktop_channel import DesktopChannel
from tabtimer.notifications.events import EventBus
from tabtimer.notifications.log_channel import LogChannel
from tabtimer.notifications.router import NotificationRouter
from tabtimer.settings_store import SettingsStore
from tabtimer.storage import MemoryStorageArea, SqliteStorageArea
from tabtimer.timers.engine import ExecutionEngine
from tabtimer.timers.scheduler import SchedulerLoop
from tabtimer.timers.store import TimerStore
from tabtimer.timers.watcher import TabWatcher

logger = logging.getLogger(__name__)


def _init_notifications() -> NotificationRouter:
    """Register notification channels and set the default."""
    router = NotificationRouter.get()
    if router.get_channel("log") is None:
        router.register_channel(LogChannel())
    if settings.notification_channel == "desktop" and router.get_channel("desktop") is None:
        router.register_channel(DesktopChannel(app_name=settings.app_name))
    router.set_default_channel(settings.notification_channel)
    logger.info(
        "Notifications initialized: channels=%s, default=%s",
        router.list_channels(),
        router.default_channel_name,
    )
    return router


class TimerService:
    """Owns every long-lived component for one host process.

    Usage::

        service = TimerService()
        await service.start()
        ...
        await service.stop()
    """

    def __init__(self, browser: BrowserSession | None = None) -> None:
        self.browser = browser or BrowserSession()
        self.tabs = PlaywrightTabHost(self.browser)
        self.events = EventBus()
        self.router = _init_notifications()

        durable = SqliteStorageArea()
        ephemeral = MemoryStorageArea() if settings.session_storage_enabled else None
        self.settings_store = SettingsStore(durable)
        self.store = TimerStore(durable, ephemeral, self.tabs)
        self.engine = ExecutionEngine(
            store=self.store,
            tabs=self.tabs,
            router=self.router,
            events=self.events,
            settings_store=self.settings_store,
        )
        self.scheduler = SchedulerLoop(
            store=self.store,
            engine=self.engine,
            settings_store=self.settings_store,
            events=self.events,
        )
        self.watcher = TabWatcher(self.store, self.events)
        self.surface = ControlSurface(self.store, self.settings_store, self.events)
        self.server = ControlServer(self.surface, self.events)

    async def start(self) -> None:
        """Launch the browser, load state, then start polling and serving."""
        await self.browser.start()
        self.tabs.attach(self.browser.context)
        for url in settings.get_start_urls():
            await self.tabs.create_tab(url, active=True)

        current = await self.settings_store.load()
        await self.store.load(retention=current.retention)
        self.watcher.attach(self.tabs)

        await self.scheduler.start()
        await self.server.start()
        logger.info("%s ready with %d timer(s)", settings.app_name, len(self.store))

    async def stop(self) -> None:
        """Discard session timers and shut everything down."""
        await self.watcher.handle_shutdown()
        await self.scheduler.stop()
        await self.server.stop()
        await self.browser.stop()
