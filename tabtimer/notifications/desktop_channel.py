"""Desktop implementation of the NotificationChannel protocol."""

from __future__ import annotations

import logging

from desktop_notifier import DesktopNotifier

logger = logging.getLogger(__name__)


class DesktopChannel:
    """Shows notifications through the operating system's notification centre."""

    def __init__(self, app_name: str, notifier: DesktopNotifier | None = None) -> None:
        self._notifier = notifier or DesktopNotifier(app_name=app_name)

    @property
    def name(self) -> str:
        return "desktop"

    async def send(self, title: str, message: str) -> bool:
        try:
            await self._notifier.send(title=title, message=message)
            return True
        except Exception:
            logger.exception("DesktopChannel.send failed for '%s'", title)
            return False
