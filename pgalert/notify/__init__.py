"""Notification delivery — message formatting, channels and the dispatcher."""

from pgalert.notify.channels import (
    DiscordChannel,
    NotificationChannel,
    SlackChannel,
    TelegramChannel,
)
from pgalert.notify.dispatcher import NotificationDispatcher, NotificationSink
from pgalert.notify.factory import create_channels, create_dispatcher
from pgalert.notify.formatters import format_duration, format_escalation, format_resolution
from pgalert.notify.types import AlertMessage, Severity

__all__ = [
    "AlertMessage",
    "DiscordChannel",
    "NotificationChannel",
    "NotificationDispatcher",
    "NotificationSink",
    "Severity",
    "SlackChannel",
    "TelegramChannel",
    "create_channels",
    "create_dispatcher",
    "format_duration",
    "format_escalation",
    "format_resolution",
]
