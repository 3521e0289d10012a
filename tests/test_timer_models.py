"""Tests for the Timer data model."""

from datetime import UTC, datetime, timedelta

import pytest

from tabtimer.timers.models import (
    ActionKind,
    Persistence,
    Timer,
    TimerStatus,
    UrlBehavior,
    compute_target_time,
    looks_sensitive,
    make_timer_id,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


def _make_timer(timer_id: str = "t1", **kwargs) -> Timer:
    defaults = {
        "tab_id": 7,
        "tab_title": "Form",
        "original_url": "https://a.example/form",
        "selector": "#submit",
        "selected_time": NOW - timedelta(minutes=5),
        "target_time": NOW,
        "created_at": NOW - timedelta(hours=1),
    }
    defaults.update(kwargs)
    return Timer(id=timer_id, **defaults)


# -- compute_target_time -------------------------------------------------------


def test_target_time_adds_offset() -> None:
    selected = datetime(2025, 6, 1, 14, 0, tzinfo=UTC)
    assert compute_target_time(selected, 5, now=NOW) == datetime(2025, 6, 1, 14, 5, tzinfo=UTC)


def test_target_time_rolls_to_next_day_when_past() -> None:
    selected = datetime(2025, 6, 1, 9, 0, tzinfo=UTC)
    assert compute_target_time(selected, 5, now=NOW) == datetime(2025, 6, 2, 9, 5, tzinfo=UTC)


def test_target_time_offset_is_configurable() -> None:
    selected = datetime(2025, 6, 1, 14, 0, tzinfo=UTC)
    assert compute_target_time(selected, 0, now=NOW) == selected


# -- Status transition ---------------------------------------------------------


def test_complete_sets_status_and_executed_at() -> None:
    timer = _make_timer()
    timer.complete(True, NOW)
    assert timer.status == TimerStatus.SUCCESS
    assert timer.executed_at == NOW


def test_complete_failure() -> None:
    timer = _make_timer()
    timer.complete(False, NOW)
    assert timer.status == TimerStatus.FAILURE
    assert timer.executed_at == NOW


def test_complete_is_one_way() -> None:
    timer = _make_timer()
    timer.complete(False, NOW)
    with pytest.raises(ValueError, match="already"):
        timer.complete(True, NOW)
    assert timer.status == TimerStatus.FAILURE


def test_is_due() -> None:
    timer = _make_timer(target_time=NOW)
    assert timer.is_due(NOW)
    assert not timer.is_due(NOW - timedelta(seconds=1))
    timer.complete(True, NOW)
    assert not timer.is_due(NOW + timedelta(hours=1))


def test_is_tab_bound() -> None:
    assert _make_timer(persistence="tab").is_tab_bound
    assert _make_timer(persistence="session").is_tab_bound
    assert not _make_timer(persistence="browser").is_tab_bound


def test_empty_selector_rejected() -> None:
    with pytest.raises(ValueError, match="selector"):
        _make_timer(selector="")


def test_unknown_enum_value_rejected() -> None:
    with pytest.raises(ValueError):
        _make_timer(url_behavior="teleport")


def test_display_text_masks_sensitive() -> None:
    timer = _make_timer(action_type="enterText", text="hunter2", is_sensitive=True)
    assert timer.display_text == "•••••••"
    assert _make_timer(text="hello").display_text == "hello"


def test_copy_is_independent() -> None:
    timer = _make_timer()
    clone = timer.copy()
    clone.complete(True, NOW)
    assert timer.is_pending


# -- Serialization -------------------------------------------------------------


def test_to_dict_uses_camel_case() -> None:
    data = _make_timer(persistence="browser", url_behavior="navigate").to_dict()
    assert data["tabId"] == 7
    assert data["originalUrl"] == "https://a.example/form"
    assert data["cssSelector"] == "#submit"
    assert data["persistence"] == "browser"
    assert data["urlBehavior"] == "navigate"
    assert data["status"] == "pending"
    assert data["targetTime"] == NOW.isoformat()
    assert data["executedAt"] is None


def test_from_dict_restores_fields() -> None:
    original = _make_timer(
        action_type="enterText",
        text="hello",
        clear_before_typing=False,
        persistence="tab",
        url_behavior="new-tab",
    )
    original.complete(True, NOW)

    restored = Timer.from_dict(original.to_dict())
    assert restored == original


def test_from_dict_accepts_legacy_record() -> None:
    record = {
        "id": "timer_1700000000000_abc",
        "tabId": 3,
        "tabTitle": "Old",
        "originalUrl": "https://a.example/",
        "cssSelector": "button",
        "targetTime": 1748779200000,
        "selectedTime": 1748778900000,
        "persistence": "browser",
        "urlBehavior": "cancel",
        "status": "pending",
        "createdAt": 1748770000000,
    }
    timer = Timer.from_dict(record)
    assert timer.action_type == ActionKind.CLICK
    assert timer.target_time == datetime(2025, 6, 1, 12, 0, tzinfo=UTC)
    assert timer.selected_time == datetime(2025, 6, 1, 11, 55, tzinfo=UTC)
    assert timer.executed_at is None


def test_from_dict_computes_missing_target_time() -> None:
    record = {
        "tabId": 1,
        "originalUrl": "https://a.example/",
        "cssSelector": "button",
        "selectedTime": "2025-06-01T14:00:00+00:00",
    }
    timer = Timer.from_dict(record, fire_offset_minutes=5, now=NOW)
    assert timer.target_time == datetime(2025, 6, 1, 14, 5, tzinfo=UTC)
    assert timer.id.startswith("timer_")
    assert timer.persistence == Persistence.SESSION
    assert timer.url_behavior == UrlBehavior.CANCEL


def test_from_dict_naive_time_is_utc() -> None:
    record = {
        "tabId": 1,
        "originalUrl": "https://a.example/",
        "cssSelector": "button",
        "selectedTime": "2025-06-01T14:00:00",
        "targetTime": "2025-06-01T14:05:00",
    }
    assert Timer.from_dict(record).target_time.tzinfo is UTC


def test_from_dict_guesses_sensitivity_from_selector() -> None:
    record = {
        "tabId": 1,
        "originalUrl": "https://a.example/",
        "cssSelector": "input[name=password]",
        "selectedTime": "2025-06-01T14:00:00+00:00",
        "targetTime": "2025-06-01T14:05:00+00:00",
    }
    assert Timer.from_dict(record).is_sensitive is True
    assert Timer.from_dict({**record, "isSensitive": False}).is_sensitive is False


def test_from_dict_missing_required_field() -> None:
    with pytest.raises(KeyError):
        Timer.from_dict({"cssSelector": "button", "selectedTime": "2025-06-01T14:00:00"})


def test_from_dict_terminal_record_gets_executed_at() -> None:
    record = {
        "id": "t9",
        "tabId": 3,
        "originalUrl": "https://a.example/",
        "cssSelector": "button",
        "selectedTime": "2025-06-01T11:55:00+00:00",
        "targetTime": "2025-06-01T12:00:00+00:00",
        "status": "executed-failure",
    }
    timer = Timer.from_dict(record)
    assert timer.status == TimerStatus.FAILURE
    assert timer.executed_at == datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


def test_from_dict_rejects_non_object() -> None:
    with pytest.raises(ValueError, match="object"):
        Timer.from_dict(None)  # type: ignore[arg-type]


# -- Helpers -------------------------------------------------------------------


@pytest.mark.parametrize(
    ("selector", "expected"),
    [
        ("input[type=password]", True),
        ("#api-token", True),
        ("input[name='card-number']", True),
        ("button[aria-label='Continue']", False),
        ("#search", False),
    ],
)
def test_looks_sensitive(selector: str, expected: bool) -> None:
    assert looks_sensitive(selector) is expected


def test_make_timer_id_unique() -> None:
    ids = {make_timer_id() for _ in range(100)}
    assert len(ids) == 100
