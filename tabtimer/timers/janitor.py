"""Auto-delete policy for executed timers."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tabtimer.timers.models import Timer

RETENTION_WINDOWS: dict[str, timedelta | None] = {
    "never": None,
    "5min": timedelta(minutes=5),
    "30min": timedelta(minutes=30),
    "1hour": timedelta(hours=1),
    "24hours": timedelta(hours=24),
}


def retention_window(policy: str) -> timedelta | None:
    """Map an ``autoDeleteExecuted`` value to a window (None = never delete)."""
    try:
        return RETENTION_WINDOWS[policy]
    except KeyError:
        msg = f"Unknown auto-delete policy: {policy}"
        raise ValueError(msg) from None


def is_expired(timer: Timer, window: timedelta | None, now: datetime | None = None) -> bool:
    """Return True if an executed timer has outlived the retention window.

    Pending timers are never expired. A terminal record without
    ``executed_at`` (legacy or corrupt) is aged from its ``target_time``.
    """
    if window is None or timer.is_pending:
        return False
    now = now or datetime.now(UTC)
    reference = timer.executed_at or timer.target_time
    return now - reference > window
