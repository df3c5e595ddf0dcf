"""Maintenance windows — scheduled suppression filtered by instance and alert type."""

from __future__ import annotations

import datetime
import uuid
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pgalert.core.clock import as_utc
from pgalert.core.exceptions import ConfigurationError


class RecurrencePattern(StrEnum):
    """How a maintenance window repeats."""

    NONE = "NONE"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    CUSTOM = "CUSTOM"  # cron expression

    @property
    def display_name(self) -> str:
        return _PATTERN_DISPLAY[self]


_PATTERN_DISPLAY: dict[RecurrencePattern, str] = {
    RecurrencePattern.NONE: "One-time",
    RecurrencePattern.DAILY: "Daily",
    RecurrencePattern.WEEKLY: "Weekly",
    RecurrencePattern.MONTHLY: "Monthly",
    RecurrencePattern.CUSTOM: "Custom (Cron)",
}


class WindowStatus(StrEnum):
    ACTIVE = "ACTIVE"
    SCHEDULED = "SCHEDULED"
    ENDED = "ENDED"


def _new_id() -> str:
    return uuid.uuid4().hex


class MaintenanceWindow(BaseModel):
    """A suppression scope for planned work.

    The window itself only answers for its literal ``[start_time, end_time]``
    interval; recurring occurrences are produced by a RecurrenceExpander as
    shifted copies.

    Filters are bypassed for a dimension whose fact value is None: an alert
    with no instance name is never excluded by ``instance_filter``, and one
    with no type is never excluded by ``alert_type_filter``.
    Naive bounds are read as UTC.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    name: str = ""
    description: str = ""
    start_time: datetime.datetime | None = None
    end_time: datetime.datetime | None = None
    recurring: bool = False
    recurrence_pattern: RecurrencePattern = RecurrencePattern.NONE
    cron_expression: str | None = None
    instance_filter: frozenset[str] = frozenset()
    alert_type_filter: frozenset[str] = frozenset()
    created_by: str | None = None
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None

    @field_validator("start_time", "end_time", "created_at", "updated_at")
    @classmethod
    def _utc(cls, v: datetime.datetime | None) -> datetime.datetime | None:
        return as_utc(v)

    @field_validator("recurrence_pattern", mode="before")
    @classmethod
    def _normalise_pattern(cls, v: object) -> object:
        if v is None:
            return RecurrencePattern.NONE
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @property
    def duration(self) -> datetime.timedelta:
        if self.start_time is None or self.end_time is None:
            return datetime.timedelta(0)
        return self.end_time - self.start_time

    @property
    def repeats(self) -> bool:
        return self.recurring and self.recurrence_pattern is not RecurrencePattern.NONE

    def is_active_now(self, now: datetime.datetime) -> bool:
        if self.start_time is None or self.end_time is None:
            return False
        return self.start_time < now < self.end_time

    def suppresses_alert(
        self,
        instance_name: str | None,
        alert_type: str | None,
        now: datetime.datetime,
    ) -> bool:
        if not self.is_active_now(now):
            return False

        if self.instance_filter and instance_name is not None:
            if instance_name not in self.instance_filter:
                return False

        if self.alert_type_filter and alert_type is not None:
            if alert_type not in self.alert_type_filter:
                return False

        return True

    def status(self, now: datetime.datetime) -> WindowStatus:
        if self.is_active_now(now):
            return WindowStatus.ACTIVE
        if self.end_time is not None and self.end_time <= now:
            return WindowStatus.ENDED
        return WindowStatus.SCHEDULED

    def shifted_to(self, start: datetime.datetime) -> MaintenanceWindow:
        """Return a copy covering one occurrence starting at *start*."""
        return self.model_copy(
            update={"start_time": start, "end_time": start + self.duration},
        )


def validate_window(window: MaintenanceWindow) -> None:
    """Check a maintenance window before it is stored.

    Raises:
        ConfigurationError: bounds missing, naive or not ordered, or a CUSTOM
            recurrence without a cron expression.
    """
    if window.start_time is None or window.end_time is None:
        raise ConfigurationError(
            f"Maintenance window {window.name!r} needs start and end times"
        )
    if window.start_time.tzinfo is None or window.end_time.tzinfo is None:
        raise ConfigurationError(
            f"Maintenance window {window.name!r} has timezone-naive bounds"
        )
    if window.start_time >= window.end_time:
        raise ConfigurationError(
            f"Maintenance window {window.name!r} must start before it ends"
        )
    if (
        window.repeats
        and window.recurrence_pattern is RecurrencePattern.CUSTOM
        and not window.cron_expression
    ):
        raise ConfigurationError(
            f"Maintenance window {window.name!r} uses CUSTOM recurrence"
            " without a cron expression"
        )
