"""Wires repositories, registry, manager, engine and notification sink."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from pgalert.core.clock import Clock, utc_now
from pgalert.core.config import Settings
from pgalert.core.exceptions import ConfigurationError
from pgalert.escalation.engine import EscalationEngine
from pgalert.escalation.policy import PolicyResolver, validate_policy
from pgalert.lifecycle.housekeeping import HousekeepingScheduler
from pgalert.lifecycle.manager import AlertManager
from pgalert.lifecycle.store import AlertStore
from pgalert.notify.dispatcher import NotificationDispatcher, NotificationSink
from pgalert.notify.factory import create_dispatcher
from pgalert.storage.base import (
    ActiveAlertRepository,
    EscalationPolicyRepository,
    MaintenanceWindowRepository,
    SilenceRepository,
)
from pgalert.storage.memory import (
    InMemoryActiveAlertRepository,
    InMemoryEscalationPolicyRepository,
    InMemoryMaintenanceWindowRepository,
    InMemorySilenceRepository,
)
from pgalert.suppression.maintenance import validate_window
from pgalert.suppression.recurrence import RecurrenceExpander
from pgalert.suppression.registry import SuppressionRegistry
from pgalert.suppression.silence import validate_silence

logger = structlog.get_logger(__name__)


@dataclass
class AlertingStack:
    manager: AlertManager
    engine: EscalationEngine
    housekeeping: HousekeepingScheduler
    registry: SuppressionRegistry
    sink: NotificationSink

    async def start(self) -> None:
        await self.engine.start()
        await self.housekeeping.start()

    async def stop(self) -> None:
        await self.housekeeping.stop()
        await self.engine.stop()
        if isinstance(self.sink, NotificationDispatcher):
            await self.sink.close()


async def create_alerting_stack(
    settings: Settings,
    *,
    sink: NotificationSink | None = None,
    alerts: ActiveAlertRepository | None = None,
    policies: EscalationPolicyRepository | None = None,
    silences: SilenceRepository | None = None,
    windows: MaintenanceWindowRepository | None = None,
    expander: RecurrenceExpander | None = None,
    clock: Clock = utc_now,
) -> AlertingStack:
    """Build the stack and seed policies and rules from *settings*.

    Seeded entries that fail validation are logged and skipped.
    """
    alerts = alerts or InMemoryActiveAlertRepository()
    policies = policies or InMemoryEscalationPolicyRepository()
    silences = silences or InMemorySilenceRepository()
    windows = windows or InMemoryMaintenanceWindowRepository()
    sink = sink or create_dispatcher(settings.alerts, clock=clock)

    await _seed(settings, policies, silences, windows)

    registry = SuppressionRegistry(expander=expander)
    await registry.reload(silences, windows)

    store = AlertStore(alerts)
    manager = AlertManager(
        store=store,
        registry=registry,
        sink=sink,
        silences=silences,
        windows=windows,
        housekeeping=settings.housekeeping,
        clock=clock,
        default_policy_id=settings.escalation.default_policy_id,
    )
    engine = EscalationEngine(
        store=store,
        registry=registry,
        sink=sink,
        policies=PolicyResolver(policies, settings.escalation),
        config=settings.escalation,
        clock=clock,
        silences=silences,
        windows=windows,
    )
    housekeeping = HousekeepingScheduler(
        manager, interval_secs=settings.housekeeping.interval_secs,
    )
    return AlertingStack(
        manager=manager,
        engine=engine,
        housekeeping=housekeeping,
        registry=registry,
        sink=sink,
    )


async def _seed(
    settings: Settings,
    policies: EscalationPolicyRepository,
    silences: SilenceRepository,
    windows: MaintenanceWindowRepository,
) -> None:
    seeds = (
        (settings.escalation.policies, validate_policy, policies, "escalation_policy"),
        (settings.suppression.silences, validate_silence, silences, "silence"),
        (settings.suppression.maintenance_windows, validate_window, windows, "maintenance_window"),
    )
    for items, validate, repo, kind in seeds:
        for item in items:
            try:
                validate(item)
            except ConfigurationError as exc:
                logger.error("seed_rejected", kind=kind, id=item.id, error=str(exc))
                continue
            await repo.save(item)
