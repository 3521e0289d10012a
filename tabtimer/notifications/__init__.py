"""Notification and event fan-out layer."""

from tabtimer.notifications.channels import NotificationChannel
from tabtimer.notifications.events import EventBus
from tabtimer.notifications.log_channel import LogChannel
from tabtimer.notifications.router import NotificationRouter

__all__ = [
    "EventBus",
    "LogChannel",
    "NotificationChannel",
    "NotificationRouter",
]
