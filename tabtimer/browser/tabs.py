"""Tab host — tracks browser pages as numbered tabs and relays actions into them."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from playwright.async_api import Error as PlaywrightError

from tabtimer.browser.actions import perform_action

if TYPE_CHECKING:
    from playwright.async_api import BrowserContext, Frame, Page

    from tabtimer.browser.session import BrowserSession

logger = logging.getLogger(__name__)

TabRemovedCallback = Callable[[int], Awaitable[None]]
UrlChangedCallback = Callable[[int, str], Awaitable[None]]


class TabClosedError(RuntimeError):
    """Raised when an operation targets a tab that no longer exists."""


@dataclass(frozen=True)
class Tab:
    """Snapshot of a tab at the moment it was resolved."""

    id: int
    url: str
    title: str = ""


@runtime_checkable
class TabHost(Protocol):
    """What the timer engine needs from the browser."""

    async def get_tab(self, tab_id: int) -> Tab | None:
        """Resolve a tab by id, or None if it no longer exists."""
        ...

    async def create_tab(self, url: str, *, active: bool = False) -> Tab:
        """Open a new tab at *url* and return it without waiting for load."""
        ...

    async def navigate(self, tab_id: int, url: str) -> None:
        """Point an existing tab at *url* without waiting for load."""
        ...

    async def wait_for_load(self, tab_id: int) -> None:
        """Return once the tab reports load completion. Callers bound the wait."""
        ...

    async def send_action(self, tab_id: int, request: dict[str, Any]) -> dict[str, Any]:
        """Deliver an action request to the in-page executor and return its reply."""
        ...

    def on_tab_removed(self, callback: TabRemovedCallback) -> None: ...

    def on_url_changed(self, callback: UrlChangedCallback) -> None: ...


class PlaywrightTabHost:
    """TabHost backed by the pages of a Playwright browser context.

    Each page gets a process-unique integer id the first time it is seen.
    Ids are never reused, so a timer bound to a closed tab cannot resolve to
    an unrelated page opened later.
    """

    def __init__(self, session: BrowserSession) -> None:
        self._session = session
        self._pages: dict[int, Page] = {}
        self._ids: dict[Page, int] = {}
        self._next_id = 1
        self._removed_callbacks: list[TabRemovedCallback] = []
        self._url_callbacks: list[UrlChangedCallback] = []

    # -- Tracking --------------------------------------------------------------

    def attach(self, context: BrowserContext) -> None:
        """Track every existing and future page of *context*."""
        for page in context.pages:
            self._track(page)
        context.on("page", self._track)

    def _track(self, page: Page) -> int:
        existing = self._ids.get(page)
        if existing is not None:
            return existing
        tab_id = self._next_id
        self._next_id += 1
        self._pages[tab_id] = page
        self._ids[page] = tab_id
        page.on("close", lambda _page: self._handle_close(tab_id))
        page.on("framenavigated", lambda frame: self._handle_navigated(tab_id, page, frame))
        logger.debug("Tracking tab %d (%s)", tab_id, page.url)
        return tab_id

    def list_tabs(self) -> list[Tab]:
        return [
            Tab(id=tab_id, url=page.url)
            for tab_id, page in self._pages.items()
            if not page.is_closed()
        ]

    def on_tab_removed(self, callback: TabRemovedCallback) -> None:
        self._removed_callbacks.append(callback)

    def on_url_changed(self, callback: UrlChangedCallback) -> None:
        self._url_callbacks.append(callback)

    async def _handle_close(self, tab_id: int) -> None:
        page = self._pages.pop(tab_id, None)
        if page is not None:
            self._ids.pop(page, None)
        logger.info("Tab %d closed", tab_id)
        for callback in list(self._removed_callbacks):
            try:
                await callback(tab_id)
            except Exception:
                logger.exception("Tab-removed callback failed for tab %d", tab_id)

    async def _handle_navigated(self, tab_id: int, page: Page, frame: Frame) -> None:
        if frame != page.main_frame:
            return
        for callback in list(self._url_callbacks):
            try:
                await callback(tab_id, frame.url)
            except Exception:
                logger.exception("URL-changed callback failed for tab %d", tab_id)

    def _page(self, tab_id: int) -> Page:
        page = self._pages.get(tab_id)
        if page is None or page.is_closed():
            msg = f"Tab {tab_id} is closed"
            raise TabClosedError(msg)
        return page

    # -- TabHost ---------------------------------------------------------------

    async def get_tab(self, tab_id: int) -> Tab | None:
        try:
            page = self._page(tab_id)
            title = await page.title()
        except (TabClosedError, PlaywrightError):
            return None
        return Tab(id=tab_id, url=page.url, title=title)

    async def create_tab(self, url: str, *, active: bool = False) -> Tab:
        page = await self._session.new_page()
        tab_id = self._track(page)
        if active:
            await page.bring_to_front()
        await page.goto(url, wait_until="commit")
        logger.info("Opened tab %d at %s", tab_id, url)
        return Tab(id=tab_id, url=page.url)

    async def navigate(self, tab_id: int, url: str) -> None:
        page = self._page(tab_id)
        await page.goto(url, wait_until="commit")
        logger.info("Navigated tab %d to %s", tab_id, url)

    async def wait_for_load(self, tab_id: int) -> None:
        page = self._page(tab_id)
        await page.wait_for_load_state("load", timeout=0)

    async def send_action(self, tab_id: int, request: dict[str, Any]) -> dict[str, Any]:
        page = self._page(tab_id)
        return await perform_action(page, request)
