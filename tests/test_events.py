"""Tests for the EventBus broadcast channel."""

from tabtimer.notifications.events import SETTINGS_CHANGED, TIMER_EXECUTED, EventBus


def test_publish_without_listeners() -> None:
    bus = EventBus()
    assert bus.publish(TIMER_EXECUTED, timerId="t1") == 0


def test_publish_delivers_payload() -> None:
    bus = EventBus()
    received: list[dict] = []
    bus.subscribe(received.append)

    assert bus.publish(TIMER_EXECUTED, timerId="t1", status="executed-success") == 1
    assert received == [
        {"event": "timer-executed", "timerId": "t1", "status": "executed-success"}
    ]


def test_unsubscribe() -> None:
    bus = EventBus()
    received: list[dict] = []
    unsubscribe = bus.subscribe(received.append)
    assert bus.listener_count == 1

    unsubscribe()
    unsubscribe()  # second call is a no-op
    bus.publish(SETTINGS_CHANGED)

    assert bus.listener_count == 0
    assert received == []


def test_failing_listener_does_not_stop_others() -> None:
    bus = EventBus()
    received: list[dict] = []

    def broken(event: dict) -> None:
        raise RuntimeError("view went away")

    bus.subscribe(broken)
    bus.subscribe(received.append)

    assert bus.publish(SETTINGS_CHANGED) == 1
    assert received == [{"event": "settings-changed"}]
