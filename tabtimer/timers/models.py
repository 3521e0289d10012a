"""Timer data model."""

from __future__ import annotations

import dataclasses
import re
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any

DEFAULT_FIRE_OFFSET_MINUTES = 5

# Substrings that suggest a field holds a secret. A display hint only.
_SENSITIVE_PATTERN = re.compile(
    r"pass|pwd|secret|token|otp|pin\b|cvv|cvc|ssn|card",
    re.IGNORECASE,
)


class ActionKind(StrEnum):
    CLICK = "click"
    ENTER_TEXT = "enterText"


class Persistence(StrEnum):
    BROWSER = "browser"
    TAB = "tab"
    SESSION = "session"


class UrlBehavior(StrEnum):
    CANCEL = "cancel"
    NEW_TAB = "new-tab"
    NAVIGATE = "navigate"


class TimerStatus(StrEnum):
    PENDING = "pending"
    SUCCESS = "executed-success"
    FAILURE = "executed-failure"


@dataclass
class Timer:
    """A single-shot automated action bound to a tab and a fire time.

    Attributes:
        id: Unique identifier, never reused.
        tab_id: Identifier of the tab the timer was created against.
        tab_title: Tab title at creation time (display only).
        original_url: Tab URL at creation time.
        selector: CSS selector of the target element.
        selected_time: The wall-clock time the user picked.
        target_time: The actual fire time (``selected_time`` + offset).
        action_type: ``click`` or ``enterText``.
        text: Literal text typed for ``enterText``.
        clear_before_typing: Clear the field first (``False`` appends).
        is_sensitive: Mask ``text`` when displayed or logged.
        persistence: Storage tier, see :class:`Persistence`.
        url_behavior: What to do when the tab has navigated away.
        status: ``pending`` until the single firing attempt completes.
        created_at: Creation timestamp.
        executed_at: Set exactly once, when ``status`` leaves ``pending``.
    """

    id: str
    tab_id: int
    original_url: str
    selector: str
    selected_time: datetime
    target_time: datetime
    tab_title: str = ""
    action_type: ActionKind = ActionKind.CLICK
    text: str = ""
    clear_before_typing: bool = True
    is_sensitive: bool = False
    persistence: Persistence = Persistence.SESSION
    url_behavior: UrlBehavior = UrlBehavior.CANCEL
    status: TimerStatus = TimerStatus.PENDING
    created_at: datetime | None = None
    executed_at: datetime | None = None

    def __post_init__(self) -> None:
        self.action_type = ActionKind(self.action_type)
        self.persistence = Persistence(self.persistence)
        self.url_behavior = UrlBehavior(self.url_behavior)
        self.status = TimerStatus(self.status)
        if self.created_at is None:
            self.created_at = datetime.now(UTC)
        # A finished timer always carries its completion time
        if self.status != TimerStatus.PENDING and self.executed_at is None:
            self.executed_at = self.target_time
        if not self.selector:
            msg = "selector must not be empty"
            raise ValueError(msg)

    # -- Convenience properties ------------------------------------------------

    @property
    def is_pending(self) -> bool:
        return self.status == TimerStatus.PENDING

    @property
    def is_tab_bound(self) -> bool:
        """True when the timer is voided once its tab no longer exists."""
        return self.persistence in (Persistence.TAB, Persistence.SESSION)

    @property
    def display_text(self) -> str:
        """The text payload, masked when flagged sensitive."""
        if self.is_sensitive:
            return "•" * len(self.text)
        return self.text

    def is_due(self, now: datetime) -> bool:
        return self.is_pending and self.target_time <= now

    # -- State transition ------------------------------------------------------

    def complete(self, success: bool, at: datetime | None = None) -> None:
        """Move from ``pending`` to a terminal status. Raises if already terminal."""
        if not self.is_pending:
            msg = f"Timer {self.id} already {self.status}"
            raise ValueError(msg)
        self.status = TimerStatus.SUCCESS if success else TimerStatus.FAILURE
        self.executed_at = at or datetime.now(UTC)

    def copy(self) -> Timer:
        return dataclasses.replace(self)

    # -- Serialization ---------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase record used on the wire and in storage."""
        return {
            "id": self.id,
            "tabId": self.tab_id,
            "tabTitle": self.tab_title,
            "originalUrl": self.original_url,
            "actionType": str(self.action_type),
            "cssSelector": self.selector,
            "text": self.text,
            "clearBeforeTyping": self.clear_before_typing,
            "isSensitive": self.is_sensitive,
            "selectedTime": _format_time(self.selected_time),
            "targetTime": _format_time(self.target_time),
            "persistence": str(self.persistence),
            "urlBehavior": str(self.url_behavior),
            "status": str(self.status),
            "createdAt": _format_time(self.created_at),
            "executedAt": _format_time(self.executed_at),
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        *,
        fire_offset_minutes: int = DEFAULT_FIRE_OFFSET_MINUTES,
        now: datetime | None = None,
    ) -> Timer:
        """Deserialize a camelCase record.

        Accepts legacy records: epoch-millisecond times, no ``actionType``
        (treated as ``click``), no ``isSensitive`` (guessed from the selector).
        A record without ``targetTime`` gets one computed from ``selectedTime``.
        Raises ``ValueError`` (or ``KeyError``) on malformed input.
        """
        if not isinstance(data, dict):
            msg = "timer record must be an object"
            raise ValueError(msg)

        selector = str(data.get("cssSelector") or data.get("selector") or "")
        selected_time = _parse_time(data["selectedTime"])
        target_raw = data.get("targetTime")
        if target_raw is None:
            target_time = compute_target_time(selected_time, fire_offset_minutes, now=now)
        else:
            target_time = _parse_time(target_raw)

        sensitive = data.get("isSensitive")
        return cls(
            id=str(data.get("id") or make_timer_id()),
            tab_id=int(data["tabId"]),
            tab_title=str(data.get("tabTitle") or ""),
            original_url=str(data["originalUrl"]),
            action_type=data.get("actionType") or ActionKind.CLICK,
            selector=selector,
            text=str(data.get("text") or ""),
            clear_before_typing=bool(data.get("clearBeforeTyping", True)),
            is_sensitive=looks_sensitive(selector) if sensitive is None else bool(sensitive),
            selected_time=selected_time,
            target_time=target_time,
            persistence=data.get("persistence") or Persistence.SESSION,
            url_behavior=data.get("urlBehavior") or UrlBehavior.CANCEL,
            status=data.get("status") or TimerStatus.PENDING,
            created_at=_parse_optional_time(data.get("createdAt")),
            executed_at=_parse_optional_time(data.get("executedAt")),
        )


def make_timer_id() -> str:
    """Generate a new timer ID."""
    return f"timer_{uuid.uuid4().hex}"


def compute_target_time(
    selected_time: datetime,
    offset_minutes: int = DEFAULT_FIRE_OFFSET_MINUTES,
    *,
    now: datetime | None = None,
) -> datetime:
    """Return ``selected_time + offset``, rolled to the next day if already past."""
    now = now or datetime.now(UTC)
    target = selected_time + timedelta(minutes=offset_minutes)
    if target <= now:
        target += timedelta(days=1)
    return target


def looks_sensitive(selector: str) -> bool:
    """Guess whether a selector targets a secret field (password, token, card...)."""
    return bool(_SENSITIVE_PATTERN.search(selector))


def _format_time(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, bool):
        msg = f"invalid timestamp: {value!r}"
        raise ValueError(msg)
    elif isinstance(value, int | float):
        parsed = datetime.fromtimestamp(value / 1000, tz=UTC)
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value)
    else:
        msg = f"invalid timestamp: {value!r}"
        raise ValueError(msg)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _parse_optional_time(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    return _parse_time(value)
