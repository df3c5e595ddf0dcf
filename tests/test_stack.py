"""Tests for create_alerting_stack — seeding from settings and end-to-end flow."""

from __future__ import annotations

import datetime

from pgalert.core.config import (
    EscalationConfig,
    Settings,
    SuppressionConfig,
)
from pgalert.core.types import ActiveAlert, AlertFact, EscalationPolicy, EscalationTier
from pgalert.notify.dispatcher import NotificationDispatcher, NotificationSink
from pgalert.stack import create_alerting_stack
from pgalert.storage.memory import InMemoryEscalationPolicyRepository
from pgalert.suppression.maintenance import MaintenanceWindow
from pgalert.suppression.silence import Silence

T0 = datetime.datetime(2026, 3, 1, 12, 0, tzinfo=datetime.UTC)
MINUTE = datetime.timedelta(minutes=1)
HOUR = datetime.timedelta(hours=1)


class FakeSink(NotificationSink):
    def __init__(self) -> None:
        self.sent: list[tuple[int, str, str]] = []

    async def notify(self, tier: int, target: str, alert: ActiveAlert) -> None:
        self.sent.append((tier, target, alert.alert_id))

    async def notify_resolution(self, alert: ActiveAlert) -> None:
        pass


class FakeClock:
    def __init__(self) -> None:
        self.now = T0

    def __call__(self) -> datetime.datetime:
        return self.now


def _settings() -> Settings:
    return Settings(
        escalation=EscalationConfig(
            default_policy_id="standard",
            policies=[
                EscalationPolicy(
                    id="standard",
                    tiers=(
                        EscalationTier(delay=5 * MINUTE, target="slack"),
                        EscalationTier(delay=15 * MINUTE, target="all"),
                    ),
                ),
                EscalationPolicy(id="broken"),
            ],
        ),
        suppression=SuppressionConfig(
            silences=[
                Silence(name="ok", start_time=T0 - HOUR, end_time=T0 + HOUR,
                        matchers=({"field": "instance", "operator": "contains", "value": "staging"},)),
                Silence(name="reversed", start_time=T0 + HOUR, end_time=T0),
            ],
            maintenance_windows=[
                MaintenanceWindow(name="nightly", start_time=T0 + HOUR, end_time=T0 + 2 * HOUR,
                                  recurring=True, recurrence_pattern="DAILY"),
            ],
        ),
    )


class TestCreateStack:
    async def test_default_sink_is_dispatcher(self) -> None:
        stack = await create_alerting_stack(Settings())
        assert isinstance(stack.sink, NotificationDispatcher)
        await stack.stop()

    async def test_seeds_valid_entries_only(self) -> None:
        policies = InMemoryEscalationPolicyRepository()
        stack = await create_alerting_stack(_settings(), sink=FakeSink(), policies=policies)
        assert [p.id for p in await policies.list()] == ["standard"]
        assert [s.name for s in stack.registry.silences] == ["ok"]
        assert [w.name for w in stack.registry.windows] == ["nightly"]

    async def test_end_to_end(self) -> None:
        sink = FakeSink()
        clock = FakeClock()
        stack = await create_alerting_stack(_settings(), sink=sink, clock=clock)

        suppressed = await stack.manager.submit_alert_fact(
            AlertFact(type="CPU", severity="HIGH", instance_name="staging-db"),
        )
        assert suppressed is None

        alert = await stack.manager.submit_alert_fact(
            AlertFact(type="CPU", severity="HIGH", instance_name="prod-db-1"),
        )
        assert alert is not None
        assert alert.escalation_policy_id == "standard"

        clock.now = T0 + 6 * MINUTE
        events = await stack.engine.tick()
        assert [e.target for e in events] == ["slack"]
        assert sink.sent == [(1, "slack", "CPU-prod-db-1")]
