"""Pure functions that convert alert records into AlertMessage objects."""

from __future__ import annotations

import datetime

from pgalert.core.types import ActiveAlert
from pgalert.notify.types import AlertMessage, Severity

ESCALATION = "ESCALATION"
RESOLUTION = "RESOLUTION"


def format_duration(delta: datetime.timedelta) -> str:
    """Render a duration as ``45s``, ``3m 5s`` or ``2h 4m``."""
    seconds = max(int(delta.total_seconds()), 0)
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


def _common_fields(alert: ActiveAlert, now: datetime.datetime) -> dict[str, str]:
    fields: dict[str, str] = {
        "alert_id": alert.alert_id,
        "severity": alert.alert_severity or "",
        "instance": alert.instance_name or "",
        "state": alert.state.value,
        "fired_at": alert.fired_at.isoformat(),
        "duration": format_duration(alert.duration(now)),
    }
    if alert.occurrences > 1:
        fields["occurrences"] = str(alert.occurrences)
    return fields


def format_escalation(
    tier: int,
    target: str,
    alert: ActiveAlert,
    now: datetime.datetime,
) -> AlertMessage:
    """Build the message sent when an alert reaches an escalation tier."""
    fields = _common_fields(alert, now)
    fields["tier"] = str(tier)
    fields["target"] = target
    if alert.acknowledged_by:
        fields["acknowledged_by"] = alert.acknowledged_by

    return AlertMessage(
        severity=Severity.from_label(alert.alert_severity),
        title=alert.alert_type or "ALERT",
        body=alert.alert_message or "",
        fields=fields,
        source_event_type=ESCALATION,
        timestamp=now.timestamp(),
        raw=alert.model_dump(mode="json"),
    )


def format_resolution(alert: ActiveAlert, now: datetime.datetime) -> AlertMessage:
    """Build the message sent when an alert resolves."""
    fields = _common_fields(alert, now)
    if alert.resolved_by:
        fields["resolved_by"] = alert.resolved_by

    return AlertMessage(
        severity=Severity.INFO,
        title=f"RESOLVED: {alert.alert_type or 'ALERT'}",
        body=alert.alert_message or "",
        fields=fields,
        source_event_type=RESOLUTION,
        timestamp=now.timestamp(),
        raw=alert.model_dump(mode="json"),
    )
