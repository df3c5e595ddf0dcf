"""Suppression — matchers, silences, maintenance windows and the registry."""

from pgalert.suppression.maintenance import (
    MaintenanceWindow,
    RecurrencePattern,
    WindowStatus,
    validate_window,
)
from pgalert.suppression.matcher import Matcher, MatchOperator, resolve_field
from pgalert.suppression.recurrence import CronRecurrenceExpander, RecurrenceExpander
from pgalert.suppression.registry import (
    SuppressionDecision,
    SuppressionKind,
    SuppressionRegistry,
    SuppressionSnapshot,
)
from pgalert.suppression.silence import Silence, SilenceStatus, validate_silence

__all__ = [
    "CronRecurrenceExpander",
    "MaintenanceWindow",
    "MatchOperator",
    "Matcher",
    "RecurrenceExpander",
    "RecurrencePattern",
    "Silence",
    "SilenceStatus",
    "SuppressionDecision",
    "SuppressionKind",
    "SuppressionRegistry",
    "SuppressionSnapshot",
    "WindowStatus",
    "resolve_field",
    "validate_silence",
    "validate_window",
]
