"""In-memory repositories for wiring, scripts and tests."""

from __future__ import annotations

import datetime

from pgalert.core.clock import as_utc
from pgalert.core.types import ActiveAlert, EscalationPolicy
from pgalert.storage.base import (
    ActiveAlertRepository,
    EscalationPolicyRepository,
    MaintenanceWindowRepository,
    SilenceRepository,
)
from pgalert.suppression.maintenance import MaintenanceWindow
from pgalert.suppression.silence import Silence


class InMemorySilenceRepository(SilenceRepository):
    def __init__(self, silences: list[Silence] | None = None) -> None:
        self._items: dict[str, Silence] = {s.id: s for s in silences or []}

    async def list(self) -> list[Silence]:
        return list(self._items.values())

    async def get(self, silence_id: str) -> Silence | None:
        return self._items.get(silence_id)

    async def save(self, silence: Silence) -> Silence:
        self._items[silence.id] = silence
        return silence

    async def delete(self, silence_id: str) -> bool:
        return self._items.pop(silence_id, None) is not None

    async def delete_expired_before(self, cutoff: datetime.datetime) -> int:
        expired = [
            s.id for s in self._items.values()
            if s.end_time is not None and as_utc(s.end_time) < cutoff
        ]
        for silence_id in expired:
            del self._items[silence_id]
        return len(expired)


class InMemoryMaintenanceWindowRepository(MaintenanceWindowRepository):
    def __init__(self, windows: list[MaintenanceWindow] | None = None) -> None:
        self._items: dict[str, MaintenanceWindow] = {w.id: w for w in windows or []}

    async def list(self) -> list[MaintenanceWindow]:
        return list(self._items.values())

    async def get(self, window_id: str) -> MaintenanceWindow | None:
        return self._items.get(window_id)

    async def save(self, window: MaintenanceWindow) -> MaintenanceWindow:
        self._items[window.id] = window
        return window

    async def delete(self, window_id: str) -> bool:
        return self._items.pop(window_id, None) is not None


class InMemoryActiveAlertRepository(ActiveAlertRepository):
    """Keeps every record by id plus an index of open records by identity."""

    def __init__(self) -> None:
        self._items: dict[str, ActiveAlert] = {}
        self._open: dict[str, str] = {}

    async def get(self, record_id: str) -> ActiveAlert | None:
        return self._items.get(record_id)

    async def find_open(self, alert_id: str) -> ActiveAlert | None:
        record_id = self._open.get(alert_id)
        if record_id is None:
            return None
        return self._items.get(record_id)

    async def save(self, alert: ActiveAlert) -> ActiveAlert:
        self._items[alert.id] = alert
        if alert.resolved:
            if self._open.get(alert.alert_id) == alert.id:
                del self._open[alert.alert_id]
        else:
            self._open[alert.alert_id] = alert.id
        return alert

    async def list_open(self) -> list[ActiveAlert]:
        return [self._items[rid] for rid in self._open.values()]

    async def list_recent(self, limit: int = 100) -> list[ActiveAlert]:
        ordered = sorted(self._items.values(), key=lambda a: a.fired_at, reverse=True)
        return ordered[:limit]

    async def delete_resolved_before(self, cutoff: datetime.datetime) -> int:
        stale = [
            a.id for a in self._items.values()
            if a.resolved and a.resolved_at is not None and a.resolved_at < cutoff
        ]
        for record_id in stale:
            del self._items[record_id]
        return len(stale)


class InMemoryEscalationPolicyRepository(EscalationPolicyRepository):
    def __init__(self, policies: list[EscalationPolicy] | None = None) -> None:
        self._items: dict[str, EscalationPolicy] = {p.id: p for p in policies or []}

    async def get(self, policy_id: str) -> EscalationPolicy | None:
        return self._items.get(policy_id)

    async def list(self) -> list[EscalationPolicy]:
        return list(self._items.values())

    async def save(self, policy: EscalationPolicy) -> EscalationPolicy:
        self._items[policy.id] = policy
        return policy

    async def delete(self, policy_id: str) -> bool:
        return self._items.pop(policy_id, None) is not None
