"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock

import pytest

from tabtimer.browser.tabs import Tab
from tabtimer.notifications.events import EventBus
from tabtimer.settings_store import SettingsStore
from tabtimer.storage import MemoryStorageArea
from tabtimer.timers.store import TimerStore


class FakeTabHost:
    """In-memory TabHost that records every interaction."""

    def __init__(self) -> None:
        self.tabs: dict[int, Tab] = {}
        self.response: Any = {"success": True}
        self.send_error: Exception | None = None
        self.load_completes = True
        self.sent: list[tuple[int, dict]] = []
        self.created: list[tuple[str, bool]] = []
        self.navigations: list[tuple[int, str]] = []
        self.load_waits: list[int] = []
        self.removed_callbacks: list = []
        self.url_callbacks: list = []
        self._next_id = 1000

    def add_tab(self, tab_id: int, url: str, title: str = "") -> Tab:
        tab = Tab(id=tab_id, url=url, title=title)
        self.tabs[tab_id] = tab
        return tab

    async def get_tab(self, tab_id: int) -> Tab | None:
        return self.tabs.get(tab_id)

    async def create_tab(self, url: str, *, active: bool = False) -> Tab:
        self._next_id += 1
        self.created.append((url, active))
        return self.add_tab(self._next_id, url)

    async def navigate(self, tab_id: int, url: str) -> None:
        self.navigations.append((tab_id, url))
        self.add_tab(tab_id, url, self.tabs[tab_id].title)

    async def wait_for_load(self, tab_id: int) -> None:
        self.load_waits.append(tab_id)
        if not self.load_completes:
            await asyncio.Event().wait()

    async def send_action(self, tab_id: int, request: dict) -> dict:
        self.sent.append((tab_id, request))
        if self.send_error is not None:
            raise self.send_error
        return self.response

    def on_tab_removed(self, callback) -> None:
        self.removed_callbacks.append(callback)

    def on_url_changed(self, callback) -> None:
        self.url_callbacks.append(callback)


class EventRecorder:
    """EventBus listener that keeps every event it receives."""

    def __init__(self) -> None:
        self.events: list[dict] = []

    def __call__(self, event: dict) -> None:
        self.events.append(event)

    @property
    def names(self) -> list[str]:
        return [event["event"] for event in self.events]


@pytest.fixture
def tabs() -> FakeTabHost:
    return FakeTabHost()


@pytest.fixture
def durable() -> MemoryStorageArea:
    return MemoryStorageArea()


@pytest.fixture
def ephemeral() -> MemoryStorageArea:
    return MemoryStorageArea()


@pytest.fixture
def store(durable: MemoryStorageArea, ephemeral: MemoryStorageArea, tabs: FakeTabHost) -> TimerStore:
    return TimerStore(durable, ephemeral, tabs)


@pytest.fixture
def settings_store() -> SettingsStore:
    return SettingsStore(MemoryStorageArea())


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def recorder(events: EventBus) -> EventRecorder:
    rec = EventRecorder()
    events.subscribe(rec)
    return rec


@pytest.fixture
def router() -> AsyncMock:
    r = AsyncMock()
    r.send = AsyncMock(return_value=True)
    return r
