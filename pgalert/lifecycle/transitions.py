"""Named lifecycle transitions for ActiveAlert records.

Each function takes a record and returns its successor; records are never
modified in place.
"""

from __future__ import annotations

import datetime
import uuid

from pgalert.core.exceptions import InvalidTransitionError
from pgalert.core.types import ActiveAlert, AlertFact


def open_alert(
    fact: AlertFact,
    now: datetime.datetime,
    policy_id: str | None = None,
    metadata: dict[str, str] | None = None,
) -> ActiveAlert:
    """Create a FIRING record for a fact's logical identity."""
    return ActiveAlert(
        id=uuid.uuid4().hex,
        alert_id=fact.identity,
        alert_type=fact.type,
        alert_severity=fact.severity,
        alert_message=fact.message,
        instance_name=fact.instance_name,
        fired_at=now,
        last_seen_at=now,
        escalation_policy_id=policy_id,
        metadata=metadata or {},
    )


def record_occurrence(
    alert: ActiveAlert, fact: AlertFact, now: datetime.datetime,
) -> ActiveAlert:
    """Note a repeat firing of an open alert; keeps the latest message."""
    if alert.resolved:
        raise InvalidTransitionError(f"Alert {alert.alert_id} is resolved")
    return alert.model_copy(update={
        "last_seen_at": now,
        "occurrences": alert.occurrences + 1,
        "alert_message": fact.message if fact.message is not None else alert.alert_message,
    })


def acknowledge(
    alert: ActiveAlert, at: datetime.datetime, by: str | None = None,
) -> ActiveAlert:
    """FIRING → ACKNOWLEDGED. Acknowledging twice keeps the first timestamp."""
    if alert.resolved:
        raise InvalidTransitionError(
            f"Alert {alert.alert_id} is resolved and cannot be acknowledged"
        )
    if alert.acknowledged:
        return alert
    return alert.model_copy(update={
        "acknowledged": True,
        "acknowledged_at": at,
        "acknowledged_by": by,
    })


def resolve(
    alert: ActiveAlert, at: datetime.datetime, by: str | None = None,
) -> ActiveAlert:
    """FIRING | ACKNOWLEDGED → RESOLVED (terminal). Idempotent."""
    if alert.resolved:
        return alert
    return alert.model_copy(update={
        "resolved": True,
        "resolved_at": at,
        "resolved_by": by,
    })


def record_notification(
    alert: ActiveAlert, at: datetime.datetime, max_tier: int,
) -> ActiveAlert:
    """Stamp a delivered notification and advance the tier, bounded by *max_tier*."""
    if alert.resolved:
        raise InvalidTransitionError(f"Alert {alert.alert_id} is resolved")
    next_tier = min(alert.current_escalation_tier + 1, max(max_tier, 1))
    return alert.model_copy(update={
        "last_notification_at": at,
        "notification_count": alert.notification_count + 1,
        "current_escalation_tier": max(next_tier, alert.current_escalation_tier),
    })
