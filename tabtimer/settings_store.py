"""User-facing timer settings — defaults, validation, and persistence."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from tabtimer.timers.janitor import retention_window
from tabtimer.timers.models import (
    DEFAULT_FIRE_OFFSET_MINUTES,
    ActionKind,
    Persistence,
    UrlBehavior,
)

if TYPE_CHECKING:
    from tabtimer.storage import StorageArea

logger = logging.getLogger(__name__)

SETTINGS_KEY = "settings"

AutoDeletePolicy = Literal["never", "5min", "30min", "1hour", "24hours"]


class TimerSettings(BaseModel):
    """Preferences that shape future scheduling and execution decisions.

    Serialised with camelCase keys (``typingSpeed``, ``notifySuccess``...).
    Values outside the documented bounds fail validation.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    auto_delete_executed: AutoDeletePolicy = "1hour"
    typing_speed: int = Field(default=50, ge=0, le=2000, description="Delay per character (ms)")
    post_text_entry_delay: int = Field(default=500, ge=0, le=10000)
    trigger_focus_blur: bool = True
    notify_success: bool = True
    notify_failure: bool = True
    fire_offset_minutes: int = Field(default=DEFAULT_FIRE_OFFSET_MINUTES, ge=0, le=1440)
    default_persistence: Persistence = Persistence.SESSION
    default_url_behavior: UrlBehavior = UrlBehavior.CANCEL
    default_action_type: ActionKind = ActionKind.CLICK
    default_selector: str = 'button[aria-label="Continue"]'
    default_clear_before_typing: bool = True

    @property
    def retention(self) -> timedelta | None:
        return retention_window(self.auto_delete_executed)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def merged(cls, overrides: dict[str, Any] | None) -> TimerSettings:
        """Merge persisted overrides over the defaults, one key at a time.

        A key that fails validation or is unknown falls back to its default
        without discarding the other keys.
        """
        merged = cls().to_dict()
        for key, value in (overrides or {}).items():
            if key not in merged:
                logger.debug("Ignoring unknown setting: %s", key)
                continue
            try:
                cls.model_validate({**merged, key: value})
            except ValidationError:
                logger.warning("Ignoring invalid persisted setting %s=%r", key, value)
                continue
            merged[key] = value
        return cls.model_validate(merged)


class SettingsStore:
    """Holds the process-wide settings, lazily loaded from the durable tier."""

    def __init__(self, storage: StorageArea) -> None:
        self._storage = storage
        self._current: TimerSettings | None = None

    @property
    def current(self) -> TimerSettings:
        """Effective settings; defaults until :meth:`load` has run."""
        if self._current is None:
            return TimerSettings()
        return self._current

    async def load(self) -> TimerSettings:
        """Read persisted overrides and merge them over the defaults."""
        try:
            stored = await self._storage.get(SETTINGS_KEY)
        except Exception:
            logger.exception("Failed to read settings — using defaults")
            stored = None
        if stored is not None and not isinstance(stored, dict):
            logger.warning("Persisted settings are not an object — using defaults")
            stored = None
        self._current = TimerSettings.merged(stored)
        return self._current

    async def update(self, values: dict[str, Any]) -> TimerSettings:
        """Replace the settings with *values* (missing keys take defaults).

        Raises ``pydantic.ValidationError`` when a value is out of range; the
        previous settings are then left untouched.
        """
        new_settings = TimerSettings.model_validate(values)
        try:
            await self._storage.set(SETTINGS_KEY, new_settings.to_dict())
        except Exception:
            logger.exception("Failed to persist settings")
        self._current = new_settings
        logger.info("Settings updated (autoDelete=%s)", new_settings.auto_delete_executed)
        return new_settings
