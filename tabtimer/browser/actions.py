"""In-page action executor — performs a click or text entry inside a page.

Request/response contract::

    {"action": "click", "selector": ...}
    {"action": "enterText", "selector": ..., "text": ...,
     "settings": {"clearBeforeTyping": bool, "typingSpeed": ms,
                  "postTextEntryDelay": ms, "triggerFocusBlur": bool}}

    -> {"success": bool, "error": str (optional)}

Failures are reported in the response, never raised.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from playwright.async_api import Error as PlaywrightError

if TYPE_CHECKING:
    from playwright.async_api import Locator, Page

logger = logging.getLogger(__name__)

# Time allowed for a single click or keystroke to be accepted by the page
ACTION_TIMEOUT_MS = 5000

_IS_TEXT_INPUT_JS = """
el => {
    if (el.isContentEditable) return true;
    const tag = el.tagName.toLowerCase();
    if (tag === 'textarea') return !el.disabled && !el.readOnly;
    if (tag !== 'input') return false;
    const textTypes = ['text', 'email', 'password', 'search', 'tel', 'url', 'number', ''];
    return textTypes.includes((el.getAttribute('type') || '').toLowerCase())
        && !el.disabled && !el.readOnly;
}
"""


async def perform_action(page: Page, request: dict[str, Any]) -> dict[str, Any]:
    """Run one action request against *page* and report the outcome."""
    action = request.get("action")
    selector = request.get("selector") or ""
    if not selector:
        return {"success": False, "error": "Missing selector"}

    try:
        locator = page.locator(selector)
        if await locator.count() == 0:
            logger.info("No elements found matching selector: %s", selector)
            return {"success": False, "error": "Element not found"}
        element = locator.first

        if action == "click":
            await _click(element)
        elif action == "enterText":
            if not await element.evaluate(_IS_TEXT_INPUT_JS):
                return {"success": False, "error": "Element is not a text input"}
            await _enter_text(element, str(request.get("text") or ""), request.get("settings") or {})
        else:
            return {"success": False, "error": f"Unknown action: {action}"}
    except PlaywrightError as exc:
        logger.warning("Action %s failed on %s: %s", action, selector, exc.message)
        return {"success": False, "error": exc.message}

    logger.info("Performed %s on selector: %s", action, selector)
    return {"success": True}


async def _click(element: Locator) -> None:
    # Hidden or covered elements are clicked anyway
    await element.scroll_into_view_if_needed(timeout=ACTION_TIMEOUT_MS)
    await element.click(force=True, timeout=ACTION_TIMEOUT_MS)


async def _enter_text(element: Locator, text: str, options: dict[str, Any]) -> None:
    focus_blur = bool(options.get("triggerFocusBlur", True))
    typing_speed = int(options.get("typingSpeed", 0))
    post_delay_ms = int(options.get("postTextEntryDelay", 0))

    await element.scroll_into_view_if_needed(timeout=ACTION_TIMEOUT_MS)
    if focus_blur:
        await element.focus(timeout=ACTION_TIMEOUT_MS)
    if options.get("clearBeforeTyping", True):
        await element.fill("", timeout=ACTION_TIMEOUT_MS)
    else:
        await element.press("End", timeout=ACTION_TIMEOUT_MS)
    await element.press_sequentially(text, delay=typing_speed, timeout=0)
    if post_delay_ms:
        await asyncio.sleep(post_delay_ms / 1000)
    if focus_blur:
        await element.evaluate("el => el.blur()")
