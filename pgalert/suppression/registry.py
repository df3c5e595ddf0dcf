"""SuppressionRegistry — the single authority on whether a fact is suppressed."""

from __future__ import annotations

import datetime
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, ConfigDict

from pgalert.core.exceptions import ConfigurationError
from pgalert.core.types import AlertFact
from pgalert.suppression.maintenance import MaintenanceWindow, validate_window
from pgalert.suppression.recurrence import (
    CronRecurrenceExpander,
    RecurrenceExpander,
    cron_for,
)
from pgalert.suppression.silence import Silence, validate_silence

if TYPE_CHECKING:
    from pgalert.storage.base import MaintenanceWindowRepository, SilenceRepository

logger = structlog.get_logger(__name__)


class SuppressionKind(StrEnum):
    SILENCE = "SILENCE"
    MAINTENANCE = "MAINTENANCE"


class SuppressionDecision(BaseModel):
    """Which rule suppressed a fact."""

    model_config = ConfigDict(frozen=True)

    kind: SuppressionKind
    rule_id: str
    rule_name: str


class SuppressionSnapshot(BaseModel):
    """Immutable set of rules evaluated together.

    ``issues`` maps the id of every misconfigured rule to its error; those
    rules never suppress anything.
    """

    model_config = ConfigDict(frozen=True)

    silences: tuple[Silence, ...] = ()
    windows: tuple[MaintenanceWindow, ...] = ()
    issues: dict[str, str] = {}


def _build_snapshot(
    silences: tuple[Silence, ...],
    windows: tuple[MaintenanceWindow, ...],
    previous: dict[str, str],
) -> SuppressionSnapshot:
    """Validate every rule; only issues absent from *previous* are logged."""
    issues: dict[str, str] = {}

    for silence in silences:
        try:
            validate_silence(silence)
        except ConfigurationError as exc:
            issues[silence.id] = str(exc)
            if previous.get(silence.id) != issues[silence.id]:
                logger.error(
                    "silence_misconfigured",
                    silence_id=silence.id,
                    name=silence.name,
                    error=str(exc),
                )

    for window in windows:
        try:
            validate_window(window)
            if window.repeats:
                cron_for(window)
        except ConfigurationError as exc:
            issues[window.id] = str(exc)
            if previous.get(window.id) != issues[window.id]:
                logger.error(
                    "maintenance_window_misconfigured",
                    window_id=window.id,
                    name=window.name,
                    error=str(exc),
                )

    return SuppressionSnapshot(silences=silences, windows=windows, issues=issues)


class SuppressionRegistry:
    """Aggregates silences and maintenance windows.

    Every edit builds a new immutable snapshot and swaps it in with a single
    assignment, so evaluations never block on administrative changes and
    always see one consistent rule set.

    Usage::

        registry = SuppressionRegistry()
        registry.add_silence(silence)
        if registry.is_suppressed(fact, now):
            return None
    """

    def __init__(self, expander: RecurrenceExpander | None = None) -> None:
        self._expander = expander or CronRecurrenceExpander()
        self._snapshot = SuppressionSnapshot()

    # ── Properties ────────────────────────────────────────────────

    @property
    def snapshot(self) -> SuppressionSnapshot:
        return self._snapshot

    @property
    def silences(self) -> tuple[Silence, ...]:
        return self._snapshot.silences

    @property
    def windows(self) -> tuple[MaintenanceWindow, ...]:
        return self._snapshot.windows

    @property
    def config_issues(self) -> dict[str, str]:
        """Misconfigured rule ids and their errors, for administrators."""
        return dict(self._snapshot.issues)

    @property
    def expander(self) -> RecurrenceExpander:
        return self._expander

    # ── Edits (copy-on-write) ─────────────────────────────────────

    def replace(
        self,
        silences: list[Silence] | tuple[Silence, ...],
        windows: list[MaintenanceWindow] | tuple[MaintenanceWindow, ...],
    ) -> None:
        self._snapshot = _build_snapshot(
            tuple(silences), tuple(windows), self._snapshot.issues,
        )

    def add_silence(self, silence: Silence) -> None:
        kept = tuple(s for s in self.silences if s.id != silence.id)
        self.replace((*kept, silence), self.windows)

    def remove_silence(self, silence_id: str) -> None:
        self.replace(
            tuple(s for s in self.silences if s.id != silence_id), self.windows,
        )

    def add_window(self, window: MaintenanceWindow) -> None:
        kept = tuple(w for w in self.windows if w.id != window.id)
        self.replace(self.silences, (*kept, window))

    def remove_window(self, window_id: str) -> None:
        self.replace(
            self.silences, tuple(w for w in self.windows if w.id != window_id),
        )

    async def reload(
        self,
        silences: SilenceRepository,
        windows: MaintenanceWindowRepository,
    ) -> None:
        """Rebuild the snapshot from the repositories."""
        self.replace(await silences.list(), await windows.list())

    # ── Queries ───────────────────────────────────────────────────

    def is_suppressed(self, fact: AlertFact, now: datetime.datetime) -> bool:
        return self.explain(fact, now) is not None

    def explain(
        self, fact: AlertFact, now: datetime.datetime,
    ) -> SuppressionDecision | None:
        """Return the first rule suppressing *fact* at *now*, or None."""
        snap = self._snapshot

        for silence in snap.silences:
            if silence.id in snap.issues:
                continue
            if silence.matches(fact, now):
                return SuppressionDecision(
                    kind=SuppressionKind.SILENCE,
                    rule_id=silence.id,
                    rule_name=silence.name,
                )

        for window in snap.windows:
            if window.id in snap.issues:
                continue
            occurrence = self._expander.occurrence_at(window, now)
            if occurrence is None:
                continue
            if occurrence.suppresses_alert(fact.instance_name, fact.type, now):
                return SuppressionDecision(
                    kind=SuppressionKind.MAINTENANCE,
                    rule_id=window.id,
                    rule_name=window.name,
                )

        return None

    def active_silences(self, now: datetime.datetime) -> list[Silence]:
        snap = self._snapshot
        return [s for s in snap.silences if s.id not in snap.issues and s.is_active(now)]

    def active_windows(self, now: datetime.datetime) -> list[MaintenanceWindow]:
        snap = self._snapshot
        return [
            w for w in snap.windows
            if w.id not in snap.issues
            and self._expander.occurrence_at(w, now) is not None
        ]
