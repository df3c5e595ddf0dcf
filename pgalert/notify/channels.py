"""Notification channels — Telegram, Discord and Slack delivery."""

from __future__ import annotations

import abc
from html import escape as html_escape

import aiohttp
import structlog

from pgalert.core.config import DiscordConfig, SlackConfig, TelegramConfig
from pgalert.notify.types import AlertMessage, Severity

logger = structlog.get_logger(__name__)

# Embed / attachment colours keyed by severity.
_COLORS: dict[Severity, int] = {
    Severity.DEBUG: 0x95A5A6,    # grey
    Severity.INFO: 0x2ECC71,     # green
    Severity.WARNING: 0xF39C12,  # orange
    Severity.CRITICAL: 0xE74C3C, # red
}


class NotificationChannel(abc.ABC):
    """Base class for alert delivery channels.

    ``name`` is what escalation tier targets refer to.
    """

    name: str = "channel"

    @abc.abstractmethod
    async def send(self, msg: AlertMessage) -> bool:
        """Send an alert message. Returns True on success."""

    @abc.abstractmethod
    async def close(self) -> None:
        """Release resources (HTTP sessions, etc.)."""


class _WebhookChannel(NotificationChannel):
    """Shared lazy aiohttp session handling."""

    def __init__(self) -> None:
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def _post(self, url: str, payload: dict, ok: tuple[int, ...]) -> bool:
        try:
            session = self._get_session()
            async with session.post(url, json=payload) as resp:
                if resp.status in ok:
                    return True
                body = await resp.text()
                logger.warning(
                    "channel_send_failed",
                    channel=self.name,
                    status=resp.status,
                    body=body[:200],
                )
                return False
        except Exception:
            logger.exception("channel_send_error", channel=self.name)
            return False

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None


class TelegramChannel(_WebhookChannel):
    """Delivers alerts via the Telegram Bot API (HTML parse mode)."""

    def __init__(self, config: TelegramConfig) -> None:
        super().__init__()
        self.name = config.name
        self._token = config.bot_token.get_secret_value()
        self._chat_id = config.chat_id

    async def send(self, msg: AlertMessage) -> bool:
        severity_label = msg.severity.name
        text_parts = [f"<b>[{severity_label}] {html_escape(msg.title)}</b>"]
        if msg.body:
            text_parts.append(html_escape(msg.body))
        if msg.fields:
            lines = [
                f"  <code>{html_escape(k)}</code>: {html_escape(v)}"
                for k, v in msg.fields.items()
            ]
            text_parts.append("\n".join(lines))

        url = f"https://api.telegram.org/bot{self._token}/sendMessage"
        payload = {
            "chat_id": self._chat_id,
            "text": "\n".join(text_parts),
            "parse_mode": "HTML",
        }
        return await self._post(url, payload, ok=(200,))


class DiscordChannel(_WebhookChannel):
    """Delivers alerts via a Discord webhook with colour-coded embeds."""

    def __init__(self, config: DiscordConfig) -> None:
        super().__init__()
        self.name = config.name
        self._webhook_url = config.webhook_url.get_secret_value()

    async def send(self, msg: AlertMessage) -> bool:
        embed: dict = {
            "title": f"[{msg.severity.name}] {msg.title}",
            "color": _COLORS.get(msg.severity, 0x95A5A6),
        }
        if msg.body:
            embed["description"] = msg.body
        if msg.fields:
            embed["fields"] = [
                {"name": k, "value": v or "-", "inline": True}
                for k, v in msg.fields.items()
            ]
        return await self._post(self._webhook_url, {"embeds": [embed]}, ok=(200, 204))


class SlackChannel(_WebhookChannel):
    """Delivers alerts via a Slack incoming webhook (attachment format)."""

    def __init__(self, config: SlackConfig) -> None:
        super().__init__()
        self.name = config.name
        self._webhook_url = config.webhook_url.get_secret_value()
        self._channel = config.channel
        self._username = config.username

    async def send(self, msg: AlertMessage) -> bool:
        attachment: dict = {
            "color": f"#{_COLORS.get(msg.severity, 0x95A5A6):06X}",
            "title": f"[{msg.severity.name}] {msg.title}",
            "text": msg.body,
            "fields": [
                {"title": k, "value": v, "short": True}
                for k, v in msg.fields.items()
            ],
            "ts": int(msg.timestamp),
        }
        payload: dict = {"username": self._username, "attachments": [attachment]}
        if self._channel:
            payload["channel"] = self._channel
        return await self._post(self._webhook_url, payload, ok=(200,))
