"""Tests for the in-memory repositories."""

from __future__ import annotations

import datetime

from pgalert.core.types import AlertFact, EscalationPolicy, EscalationTier
from pgalert.lifecycle.transitions import open_alert, resolve
from pgalert.storage.memory import (
    InMemoryActiveAlertRepository,
    InMemoryEscalationPolicyRepository,
    InMemoryMaintenanceWindowRepository,
    InMemorySilenceRepository,
)
from pgalert.suppression.maintenance import MaintenanceWindow
from pgalert.suppression.silence import Silence

T0 = datetime.datetime(2026, 3, 1, 12, 0, tzinfo=datetime.UTC)
HOUR = datetime.timedelta(hours=1)

FACT = AlertFact(type="LOCK_WAIT", severity="HIGH", instance_name="prod-db-1")


# ── Alerts ──────────────────────────────────────────────────────


class TestActiveAlertRepository:
    async def test_open_index(self) -> None:
        repo = InMemoryActiveAlertRepository()
        alert = await repo.save(open_alert(FACT, T0))
        assert await repo.find_open(alert.alert_id) == alert
        assert await repo.list_open() == [alert]

    async def test_resolve_drops_from_index(self) -> None:
        repo = InMemoryActiveAlertRepository()
        alert = await repo.save(open_alert(FACT, T0))
        await repo.save(resolve(alert, T0 + HOUR))
        assert await repo.find_open(alert.alert_id) is None
        assert await repo.list_open() == []
        stored = await repo.get(alert.id)
        assert stored is not None and stored.resolved

    async def test_stale_resolution_keeps_newer_open_record(self) -> None:
        repo = InMemoryActiveAlertRepository()
        old = await repo.save(open_alert(FACT, T0))
        new = await repo.save(open_alert(FACT, T0 + HOUR))
        await repo.save(resolve(old, T0 + 2 * HOUR))
        assert await repo.find_open(FACT.identity) == new

    async def test_list_recent_newest_first(self) -> None:
        repo = InMemoryActiveAlertRepository()
        first = await repo.save(open_alert(FACT, T0))
        second = await repo.save(open_alert(AlertFact(type="CPU"), T0 + HOUR))
        assert await repo.list_recent() == [second, first]
        assert await repo.list_recent(1) == [second]

    async def test_delete_resolved_before(self) -> None:
        repo = InMemoryActiveAlertRepository()
        old = await repo.save(resolve(open_alert(FACT, T0), T0 + HOUR))
        await repo.save(open_alert(AlertFact(type="CPU"), T0))
        assert await repo.delete_resolved_before(T0 + 2 * HOUR) == 1
        assert await repo.get(old.id) is None
        assert len(await repo.list_open()) == 1


# ── Rules ───────────────────────────────────────────────────────


class TestSilenceRepository:
    async def test_crud(self) -> None:
        silence = Silence(name="s", start_time=T0, end_time=T0 + HOUR)
        repo = InMemorySilenceRepository([silence])
        assert await repo.get(silence.id) == silence
        assert await repo.delete(silence.id) is True
        assert await repo.delete(silence.id) is False
        assert await repo.list() == []

    async def test_delete_expired_before(self) -> None:
        old = Silence(name="old", start_time=T0, end_time=T0 + HOUR)
        current = Silence(name="current", start_time=T0, end_time=T0 + 10 * HOUR)
        repo = InMemorySilenceRepository([old, current])
        assert await repo.delete_expired_before(T0 + 2 * HOUR) == 1
        assert await repo.list() == [current]


class TestMaintenanceWindowRepository:
    async def test_crud(self) -> None:
        repo = InMemoryMaintenanceWindowRepository()
        window = await repo.save(MaintenanceWindow(name="w", start_time=T0, end_time=T0 + HOUR))
        assert await repo.list() == [window]
        renamed = await repo.save(window.model_copy(update={"name": "renamed"}))
        assert await repo.get(window.id) == renamed
        assert await repo.delete(window.id) is True


class TestEscalationPolicyRepository:
    async def test_crud(self) -> None:
        policy = EscalationPolicy(id="p", tiers=(EscalationTier(),))
        repo = InMemoryEscalationPolicyRepository()
        await repo.save(policy)
        assert await repo.get("p") == policy
        assert await repo.list() == [policy]
        assert await repo.delete("p") is True
        assert await repo.get("p") is None
