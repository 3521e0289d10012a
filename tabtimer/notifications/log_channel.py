"""Log implementation of the NotificationChannel protocol, for headless hosts."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class LogChannel:
    """Writes notifications to the application log."""

    @property
    def name(self) -> str:
        return "log"

    async def send(self, title: str, message: str) -> bool:
        logger.info("[%s] %s", title, message)
        return True
