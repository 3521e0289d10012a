"""Browser session — async context manager wrapping Playwright lifecycle."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from playwright.async_api import async_playwright

if TYPE_CHECKING:
    from types import TracebackType

    from playwright.async_api import BrowserContext, Page

from tabtimer.config import settings

logger = logging.getLogger(__name__)

DEFAULT_VIEWPORT = {"width": 1280, "height": 720}

CHROMIUM_ARGS = [
    "--disable-dev-shm-usage",
]


class BrowserSession:
    """Owns the Chromium instance whose pages are the tabs timers target.

    Uses a persistent browser profile so logins and cookies survive restarts.

    Usage::

        async with BrowserSession() as session:
            page = await session.new_page()
            await page.goto("https://example.com")
    """

    def __init__(self, timeout_ms: int | None = None, headless: bool | None = None) -> None:
        self._timeout_ms = timeout_ms or settings.browser_timeout_ms
        self._headless = settings.browser_headless if headless is None else headless
        self._playwright = None
        self._context: BrowserContext | None = None

    @property
    def context(self) -> BrowserContext:
        if self._context is None:
            msg = "Browser session not started — call start() or use as async context manager"
            raise RuntimeError(msg)
        return self._context

    async def start(self) -> None:
        """Launch the browser with a persistent profile."""
        profile_dir = settings.browser_profile_dir
        profile_dir.mkdir(parents=True, exist_ok=True)

        self._playwright = await async_playwright().start()
        self._context = await self._playwright.chromium.launch_persistent_context(
            user_data_dir=str(profile_dir),
            headless=self._headless,
            args=CHROMIUM_ARGS,
            viewport=DEFAULT_VIEWPORT,
        )
        self._context.set_default_timeout(self._timeout_ms)
        logger.info(
            "Browser session started (headless=%s, timeout=%dms)",
            self._headless,
            self._timeout_ms,
        )

    async def stop(self) -> None:
        """Close everything."""
        if self._context:
            await self._context.close()
            self._context = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
        logger.info("Browser session stopped")

    async def new_page(self) -> Page:
        """Create a new page in the browser context."""
        return await self.context.new_page()

    async def __aenter__(self) -> BrowserSession:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.stop()
