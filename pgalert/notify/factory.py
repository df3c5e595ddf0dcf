"""Convenience factory for wiring notification channels."""

from __future__ import annotations

from pgalert.core.clock import Clock, utc_now
from pgalert.core.config import AlertsConfig
from pgalert.notify.channels import (
    DiscordChannel,
    NotificationChannel,
    SlackChannel,
    TelegramChannel,
)
from pgalert.notify.dispatcher import NotificationDispatcher


def create_channels(config: AlertsConfig) -> list[NotificationChannel]:
    """Build every enabled channel, in telegram/discord/slack order."""
    channels: list[NotificationChannel] = []

    if config.telegram.enabled:
        channels.append(TelegramChannel(config.telegram))

    if config.discord.enabled:
        channels.append(DiscordChannel(config.discord))

    if config.slack.enabled:
        channels.append(SlackChannel(config.slack))

    return channels


def create_dispatcher(config: AlertsConfig, clock: Clock = utc_now) -> NotificationDispatcher:
    return NotificationDispatcher(channels=create_channels(config), clock=clock)
