"""Recurrence expansion for maintenance windows."""

from __future__ import annotations

import abc
import datetime

from croniter import croniter

from pgalert.core.exceptions import ConfigurationError
from pgalert.suppression.maintenance import MaintenanceWindow, RecurrencePattern


class RecurrenceExpander(abc.ABC):
    """Maps a recurring window to its concrete occurrences."""

    @abc.abstractmethod
    def occurrence_at(
        self, window: MaintenanceWindow, now: datetime.datetime,
    ) -> MaintenanceWindow | None:
        """Return the occurrence whose interval contains *now*, if any."""

    @abc.abstractmethod
    def next_occurrence(
        self, window: MaintenanceWindow, after: datetime.datetime,
    ) -> MaintenanceWindow | None:
        """Return the first occurrence starting after *after*, if any."""


def cron_for(window: MaintenanceWindow) -> str:
    """Derive the cron expression describing a window's occurrence starts.

    Raises:
        ConfigurationError: no start time, or an invalid/missing CUSTOM expression.
    """
    if window.recurrence_pattern is RecurrencePattern.CUSTOM:
        expr = window.cron_expression or ""
        if not croniter.is_valid(expr):
            raise ConfigurationError(
                f"Maintenance window {window.name!r} has invalid cron expression {expr!r}"
            )
        return expr

    if window.start_time is None:
        raise ConfigurationError(f"Maintenance window {window.name!r} has no start time")
    start = window.start_time.astimezone(datetime.UTC)

    match window.recurrence_pattern:
        case RecurrencePattern.DAILY:
            return f"{start.minute} {start.hour} * * *"
        case RecurrencePattern.WEEKLY:
            # cron counts Sunday as 0; Python's weekday() counts Monday as 0.
            return f"{start.minute} {start.hour} * * {(start.weekday() + 1) % 7}"
        case RecurrencePattern.MONTHLY:
            return f"{start.minute} {start.hour} {start.day} * *"
        case RecurrencePattern.NONE:
            raise ConfigurationError(
                f"Maintenance window {window.name!r} does not recur"
            )


class CronRecurrenceExpander(RecurrenceExpander):
    """Expands DAILY/WEEKLY/MONTHLY/CUSTOM windows with croniter.

    Cron expressions are evaluated in UTC whatever the offset of *now*.
    Occurrences keep the literal window's duration and never start before
    its literal ``start_time``. Monthly windows anchored on day 29-31 skip
    months without that day.
    """

    def occurrence_at(
        self, window: MaintenanceWindow, now: datetime.datetime,
    ) -> MaintenanceWindow | None:
        if window.is_active_now(now):
            return window
        if not window.repeats or window.start_time is None or window.end_time is None:
            return None
        if now <= window.start_time:
            return None

        start = croniter(
            cron_for(window), now.astimezone(datetime.UTC),
        ).get_prev(datetime.datetime)
        if start < window.start_time:
            return None

        occurrence = window.shifted_to(start)
        return occurrence if occurrence.is_active_now(now) else None

    def next_occurrence(
        self, window: MaintenanceWindow, after: datetime.datetime,
    ) -> MaintenanceWindow | None:
        if window.start_time is None or window.end_time is None:
            return None
        if window.start_time > after:
            return window
        if not window.repeats:
            return None

        start = croniter(
            cron_for(window), after.astimezone(datetime.UTC),
        ).get_next(datetime.datetime)
        return window.shifted_to(start)
