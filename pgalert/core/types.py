"""Domain types shared by the suppression, lifecycle and escalation subsystems."""

from __future__ import annotations

import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

GLOBAL_INSTANCE = "global"


class AlertFact(BaseModel):
    """A single observation that a monitored condition has fired."""

    model_config = ConfigDict(frozen=True)

    type: str | None = None
    severity: str | None = None
    instance_name: str | None = None
    message: str | None = None

    @property
    def identity(self) -> str:
        """Logical alert identity: one open record per type and instance."""
        return f"{self.type}-{self.instance_name or GLOBAL_INSTANCE}"


# ── Alert lifecycle ──────────────────────────────────────────────


class AlertState(StrEnum):
    """Lifecycle state of an ActiveAlert."""

    FIRING = "FIRING"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    RESOLVED = "RESOLVED"


class ActiveAlert(BaseModel):
    """Lifecycle record for one firing alert.

    Records are immutable; see ``pgalert.lifecycle.transitions`` for the
    functions that produce successor states.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    alert_id: str
    alert_type: str | None = None
    alert_severity: str | None = None
    alert_message: str | None = None
    instance_name: str | None = None
    fired_at: datetime.datetime
    last_seen_at: datetime.datetime | None = None
    occurrences: int = 1
    last_notification_at: datetime.datetime | None = None
    notification_count: int = 0
    current_escalation_tier: int = Field(default=1, ge=1)
    escalation_policy_id: str | None = None
    acknowledged: bool = False
    acknowledged_at: datetime.datetime | None = None
    acknowledged_by: str | None = None
    resolved: bool = False
    resolved_at: datetime.datetime | None = None
    resolved_by: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _resolved_has_timestamp(self) -> ActiveAlert:
        if self.resolved and self.resolved_at is None:
            raise ValueError("resolved alert requires resolved_at")
        return self

    @property
    def state(self) -> AlertState:
        if self.resolved:
            return AlertState.RESOLVED
        if self.acknowledged:
            return AlertState.ACKNOWLEDGED
        return AlertState.FIRING

    @property
    def is_open(self) -> bool:
        return not self.resolved

    def duration(self, now: datetime.datetime) -> datetime.timedelta:
        """Time the alert has been (or was) firing."""
        if self.resolved and self.resolved_at is not None:
            return self.resolved_at - self.fired_at
        return now - self.fired_at

    def to_fact(self) -> AlertFact:
        """Rebuild the fact this alert represents, for suppression checks."""
        return AlertFact(
            type=self.alert_type,
            severity=self.alert_severity,
            instance_name=self.instance_name,
            message=self.alert_message,
        )


# ── Escalation ───────────────────────────────────────────────────


class EscalationTier(BaseModel):
    """One step of an escalation ladder.

    ``delay`` is measured from the previous notification (or from the fire
    time when nothing has been sent yet). Config files may give
    ``delay_minutes`` instead.
    """

    model_config = ConfigDict(frozen=True)

    delay: datetime.timedelta = datetime.timedelta(0)
    target: str = "all"

    @model_validator(mode="before")
    @classmethod
    def _delay_minutes(cls, data: Any) -> Any:
        if isinstance(data, dict) and "delay_minutes" in data:
            data = dict(data)
            minutes = data.pop("delay_minutes")
            data.setdefault("delay", datetime.timedelta(minutes=float(minutes)))
        return data

    @property
    def display_text(self) -> str:
        if self.delay <= datetime.timedelta(0):
            return f"{self.target} (Immediate)"
        minutes = int(self.delay.total_seconds() // 60)
        return f"{self.target} (After {minutes} min)"


class EscalationPolicy(BaseModel):
    """Ordered notification tiers, shared by id between alerts."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    description: str = ""
    enabled: bool = True
    tiers: tuple[EscalationTier, ...] = ()

    @property
    def max_tier(self) -> int:
        return len(self.tiers)

    def tier(self, number: int) -> EscalationTier | None:
        """Return the 1-based tier, clamped to the last defined tier."""
        if not self.tiers:
            return None
        index = min(max(number, 1), len(self.tiers)) - 1
        return self.tiers[index]


class EscalationEvent(BaseModel):
    """A notification the escalation engine emitted."""

    alert_id: str
    record_id: str
    tier: int
    target: str
    notified_at: datetime.datetime


class EscalationStatus(BaseModel):
    """Read-only view of where an alert sits on its escalation ladder."""

    alert_id: str
    current_tier: int
    max_tier: int
    since_last_notification: datetime.timedelta | None = None
    until_next_escalation: datetime.timedelta | None = None
    text: str = ""

    @property
    def at_max_tier(self) -> bool:
        return self.current_tier >= self.max_tier


class AlertStats(BaseModel):
    """Aggregate counters for the alert overview."""

    active_count: int = 0
    critical_count: int = 0
    unacknowledged_count: int = 0
    resolved_last_24h: int = 0
    active_silences: int = 0
    active_maintenance_windows: int = 0

    @property
    def has_critical_unacknowledged(self) -> bool:
        return self.critical_count > 0 and self.unacknowledged_count > 0
