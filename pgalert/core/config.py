"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, SecretStr

from pgalert.core.types import EscalationPolicy
from pgalert.suppression.maintenance import MaintenanceWindow
from pgalert.suppression.silence import Silence

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"
    decision_log: bool = True
    # Third-party loggers held at WARNING unless the root level is DEBUG.
    quiet_loggers: list[str] = ["aiohttp", "asyncio"]


class TelegramConfig(BaseModel):
    """Telegram Bot API channel."""

    enabled: bool = False
    name: str = "telegram"
    bot_token: SecretStr = SecretStr("")
    chat_id: str = ""


class DiscordConfig(BaseModel):
    """Discord webhook channel."""

    enabled: bool = False
    name: str = "discord"
    webhook_url: SecretStr = SecretStr("")


class SlackConfig(BaseModel):
    """Slack incoming-webhook channel."""

    enabled: bool = False
    name: str = "slack"
    webhook_url: SecretStr = SecretStr("")
    channel: str = ""
    username: str = "pgalert"


class AlertsConfig(BaseModel):
    """Notification channel configuration."""

    telegram: TelegramConfig = TelegramConfig()
    discord: DiscordConfig = DiscordConfig()
    slack: SlackConfig = SlackConfig()


class EscalationConfig(BaseModel):
    """Escalation engine configuration."""

    tick_interval_secs: float = 60.0
    max_concurrency: int = 16
    pause_on_acknowledge: bool = False
    default_target: str = "all"
    fallback_delay_secs: float = 0.0
    default_policy_id: str | None = None
    policies: list[EscalationPolicy] = Field(default_factory=list)


class SuppressionConfig(BaseModel):
    """Silences and maintenance windows seeded at startup."""

    silences: list[Silence] = Field(default_factory=list)
    maintenance_windows: list[MaintenanceWindow] = Field(default_factory=list)


class HousekeepingConfig(BaseModel):
    """Retention of resolved alerts and expired silences."""

    alert_retention_days: int = 30
    silence_retention_days: int = 7
    interval_secs: float = 86400.0


class Settings(BaseModel):
    """Root settings container."""

    logging: LoggingConfig = LoggingConfig()
    alerts: AlertsConfig = AlertsConfig()
    escalation: EscalationConfig = EscalationConfig()
    suppression: SuppressionConfig = SuppressionConfig()
    housekeeping: HousekeepingConfig = HousekeepingConfig()


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
