"""Notification sink — routes escalation and resolution messages to channels."""

from __future__ import annotations

import abc

import structlog

from pgalert.core.clock import Clock, utc_now
from pgalert.core.exceptions import ConfigurationError, TransientError
from pgalert.core.logging import DECISION_LOGGER
from pgalert.core.types import ActiveAlert
from pgalert.notify.channels import NotificationChannel
from pgalert.notify.formatters import format_escalation, format_resolution
from pgalert.notify.types import AlertMessage

# Dedicated structured logger for decision records.
decision_logger = structlog.get_logger(DECISION_LOGGER)

logger = structlog.get_logger(__name__)

ALL_CHANNELS = ("all", "*")
LOG_ONLY = "log"


class NotificationSink(abc.ABC):
    """Consumer of escalation events.

    Delivery is at-least-once: the engine retries a failed tier on its next
    tick, so implementations may see the same (tier, alert) more than once.
    """

    @abc.abstractmethod
    async def notify(self, tier: int, target: str, alert: ActiveAlert) -> None:
        """Deliver a tier notification.

        Raises:
            TransientError: delivery failed and should be retried.
            ConfigurationError: *target* cannot be routed.
        """

    @abc.abstractmethod
    async def notify_resolution(self, alert: ActiveAlert) -> None:
        """Announce that an alert resolved (best effort)."""


class NotificationDispatcher(NotificationSink):
    """Routes alert messages to named notification channels.

    - Every message is logged via *decision_logger* (full model dump).
    - A tier target is a channel name, a comma-separated list of names,
      ``all`` (every channel) or ``log`` (decision log only).
    - ``all`` with no channels configured degrades to log-only delivery.
    - A tier notification counts as delivered when at least one selected
      channel accepted it; otherwise TransientError is raised.
    """

    def __init__(
        self,
        channels: list[NotificationChannel] | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._channels: list[NotificationChannel] = channels or []
        self._clock = clock

    @property
    def channel_names(self) -> list[str]:
        return [ch.name for ch in self._channels]

    # ── Sink entry points ───────────────────────────────────────

    async def notify(self, tier: int, target: str, alert: ActiveAlert) -> None:
        msg = format_escalation(tier, target, alert, self._clock())
        channels = self._select(target)
        self._log_decision(msg, target=target, channels=[ch.name for ch in channels])

        if not channels:
            return

        delivered = await self._dispatch_to_channels(msg, channels)
        if delivered == 0:
            raise TransientError(
                f"No channel accepted tier {tier} notification for {alert.alert_id}"
            )

    async def notify_resolution(self, alert: ActiveAlert) -> None:
        msg = format_resolution(alert, self._clock())
        self._log_decision(msg, target="all", channels=self.channel_names)
        await self._dispatch_to_channels(msg, self._channels)

    # ── Direct send ─────────────────────────────────────────────

    async def send(self, msg: AlertMessage, target: str = "all") -> int:
        """Dispatch an AlertMessage directly; returns the delivered count."""
        channels = self._select(target)
        self._log_decision(msg, target=target, channels=[ch.name for ch in channels])
        return await self._dispatch_to_channels(msg, channels)

    # ── Internal routing ────────────────────────────────────────

    def _select(self, target: str) -> list[NotificationChannel]:
        key = target.strip().lower()
        if key in ALL_CHANNELS:
            return list(self._channels)
        if key == LOG_ONLY:
            return []

        wanted = {name.strip().lower() for name in target.split(",") if name.strip()}
        selected = [ch for ch in self._channels if ch.name.lower() in wanted]
        if not selected:
            raise ConfigurationError(
                f"Notification target {target!r} matches no configured channel"
                f" (have: {', '.join(self.channel_names) or 'none'})"
            )
        return selected

    def _log_decision(
        self, msg: AlertMessage, target: str, channels: list[str],
    ) -> None:
        decision_logger.info(
            "decision",
            severity=msg.severity.name,
            title=msg.title,
            body=msg.body,
            source_event_type=msg.source_event_type,
            target=target,
            channels=channels,
            fields=msg.fields,
            raw=msg.raw,
        )

    async def _dispatch_to_channels(
        self, msg: AlertMessage, channels: list[NotificationChannel],
    ) -> int:
        delivered = 0
        for ch in channels:
            try:
                if await ch.send(msg):
                    delivered += 1
            except Exception:
                logger.exception(
                    "channel_dispatch_error",
                    channel=ch.name,
                    title=msg.title,
                )
        return delivered

    # ── Lifecycle ───────────────────────────────────────────────

    async def close(self) -> None:
        for ch in self._channels:
            try:
                await ch.close()
            except Exception:
                logger.exception("channel_close_error", channel=ch.name)
