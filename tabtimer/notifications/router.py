"""Process-wide registry of notification channels used for timer outcomes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tabtimer.notifications.channels import NotificationChannel

logger = logging.getLogger(__name__)


class NotificationRouter:
    """Delivers timer outcome notifications through a named channel.

    One instance per process, via ``NotificationRouter.get()``. A send that
    names no channel goes to the default; with no default set it is dropped.
    Delivery never raises: any failure is logged and reported as ``False``.
    """

    _instance: NotificationRouter | None = None

    def __init__(self) -> None:
        self._channels: dict[str, NotificationChannel] = {}
        self._default: str | None = None

    @classmethod
    def get(cls) -> NotificationRouter:
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Drop the process-wide instance (tests only)."""
        cls._instance = None

    def register_channel(self, channel: NotificationChannel) -> None:
        if channel.name in self._channels:
            msg = f"Channel '{channel.name}' is already registered"
            raise ValueError(msg)
        self._channels[channel.name] = channel

    def set_default_channel(self, name: str) -> None:
        if name not in self._channels:
            msg = f"Channel '{name}' is not registered"
            raise KeyError(msg)
        self._default = name

    def get_channel(self, name: str) -> NotificationChannel | None:
        return self._channels.get(name)

    def list_channels(self) -> list[str]:
        return list(self._channels)

    @property
    def default_channel_name(self) -> str | None:
        return self._default

    async def send(self, title: str, message: str, *, channel: str | None = None) -> bool:
        """Notify through ``channel``, or the default when omitted."""
        name = channel or self._default
        target = self._channels.get(name) if name else None
        if target is None:
            logger.warning("Notification '%s' dropped: no channel %r", title, name)
            return False
        try:
            return await target.send(title, message)
        except Exception:
            logger.exception("Channel '%s' failed to deliver '%s'", target.name, title)
            return False
