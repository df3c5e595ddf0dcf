"""EscalationEngine — periodic driver that advances tiers and notifies."""

from __future__ import annotations

import asyncio
import datetime

import structlog

from pgalert.core.clock import Clock, utc_now
from pgalert.core.config import EscalationConfig
from pgalert.core.exceptions import ConfigurationError, TransientError
from pgalert.core.types import ActiveAlert, EscalationEvent, EscalationStatus
from pgalert.escalation.policy import PolicyResolver
from pgalert.lifecycle.store import AlertStore
from pgalert.lifecycle.transitions import record_notification
from pgalert.notify.dispatcher import NotificationSink
from pgalert.storage.base import MaintenanceWindowRepository, SilenceRepository
from pgalert.suppression.registry import SuppressionRegistry

logger = structlog.get_logger(__name__)


class EscalationEngine:
    """Ticks over open alerts and escalates the ones whose tier delay elapsed.

    Per tick, each open alert is processed independently (bounded by
    ``max_concurrency``) under its identity lock:

    1. resolved alerts are skipped, and acknowledged ones too when
       ``pause_on_acknowledge`` is set;
    2. suppressed alerts are skipped without advancing;
    3. once ``now - (last_notification_at or fired_at)`` reaches the current
       tier's delay, the tier's target is notified and the tier advances,
       bounded by the policy's last tier.

    A failed delivery leaves the record untouched so the same tier is
    retried on the next tick.

    Usage::

        engine = EscalationEngine(store, registry, dispatcher, resolver, config)
        await engine.start()
        # ...
        await engine.stop()
    """

    def __init__(
        self,
        store: AlertStore,
        registry: SuppressionRegistry,
        sink: NotificationSink,
        policies: PolicyResolver,
        config: EscalationConfig | None = None,
        clock: Clock = utc_now,
        silences: SilenceRepository | None = None,
        windows: MaintenanceWindowRepository | None = None,
    ) -> None:
        self._store = store
        self._registry = registry
        self._sink = sink
        self._policies = policies
        self._config = config or EscalationConfig()
        self._clock = clock
        self._silences = silences
        self._windows = windows
        self._task: asyncio.Task[None] | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    # ── Lifecycle ───────────────────────────────────────────────

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "escalation_engine_started",
            tick_interval_secs=self._config.tick_interval_secs,
        )

    async def stop(self) -> None:
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("escalation_engine_stopped")

    async def _loop(self) -> None:
        while self._running:
            try:
                await self.tick()
            except asyncio.CancelledError:
                return
            except Exception:
                logger.exception("escalation_loop_error")
            await asyncio.sleep(self._config.tick_interval_secs)

    # ── Tick ────────────────────────────────────────────────────

    async def tick(self, now: datetime.datetime | None = None) -> list[EscalationEvent]:
        """Process every open alert once; return the notifications sent."""
        now = now or self._clock()
        await self._reload_suppression()

        alerts = await self._store.list_open()
        if not alerts:
            logger.debug("escalation_tick_idle")
            return []

        semaphore = asyncio.Semaphore(max(self._config.max_concurrency, 1))

        async def _run(alert_id: str) -> EscalationEvent | None:
            async with semaphore:
                return await self._process_safely(alert_id, now)

        results = await asyncio.gather(*(_run(a.alert_id) for a in alerts))
        events = [e for e in results if e is not None]

        logger.info(
            "escalation_tick",
            open_alerts=len(alerts),
            notified=len(events),
        )
        return events

    async def _reload_suppression(self) -> None:
        if self._silences is None or self._windows is None:
            return
        try:
            await self._registry.reload(self._silences, self._windows)
        except Exception:
            # Keep evaluating against the previous snapshot.
            logger.exception("suppression_reload_error")

    async def _process_safely(
        self, alert_id: str, now: datetime.datetime,
    ) -> EscalationEvent | None:
        try:
            return await self.process_alert(alert_id, now)
        except Exception:
            logger.exception("escalation_error", alert_id=alert_id)
            return None

    async def process_alert(
        self, alert_id: str, now: datetime.datetime,
    ) -> EscalationEvent | None:
        """Escalate one logical alert if it is due; return the event sent."""
        async with self._store.lock(alert_id):
            alert = await self._store.find_open(alert_id)
            if alert is None:
                return None

            if alert.acknowledged and self._config.pause_on_acknowledge:
                return None

            # A duplicate tick at (or before) the last notification is a no-op.
            if alert.last_notification_at is not None and alert.last_notification_at >= now:
                return None

            decision = self._registry.explain(alert.to_fact(), now)
            if decision is not None:
                logger.debug(
                    "escalation_suppressed",
                    alert_id=alert_id,
                    kind=decision.kind.value,
                    rule=decision.rule_name,
                )
                return None

            policy = await self._policies.resolve(alert.escalation_policy_id, alert_id)
            if not policy.enabled:
                logger.debug(
                    "escalation_policy_disabled",
                    alert_id=alert_id,
                    policy_id=policy.id,
                )
                return None

            tier_number = min(alert.current_escalation_tier, policy.max_tier)
            tier = policy.tier(tier_number)
            if tier is None:
                return None

            since = alert.last_notification_at or alert.fired_at
            if now - since < tier.delay:
                return None

            try:
                await self._sink.notify(tier_number, tier.target, alert)
            except TransientError as exc:
                logger.warning(
                    "escalation_delivery_failed",
                    alert_id=alert_id,
                    tier=tier_number,
                    target=tier.target,
                    error=str(exc),
                )
                return None
            except ConfigurationError as exc:
                logger.error(
                    "escalation_target_misconfigured",
                    alert_id=alert_id,
                    tier=tier_number,
                    target=tier.target,
                    error=str(exc),
                )
                return None

            updated = record_notification(alert, now, policy.max_tier)
            await self._store.save(updated)

            logger.info(
                "alert_escalated",
                alert_id=alert_id,
                tier=tier_number,
                next_tier=updated.current_escalation_tier,
                target=tier.target,
            )
            return EscalationEvent(
                alert_id=alert_id,
                record_id=alert.id,
                tier=tier_number,
                target=tier.target,
                notified_at=now,
            )

    # ── Status ──────────────────────────────────────────────────

    async def status(
        self, alert: ActiveAlert, now: datetime.datetime | None = None,
    ) -> EscalationStatus:
        """Describe where *alert* sits on its escalation ladder."""
        now = now or self._clock()
        policy = await self._policies.resolve(alert.escalation_policy_id, alert.alert_id)
        current = min(alert.current_escalation_tier, max(policy.max_tier, 1))

        since_last = None
        if alert.last_notification_at is not None:
            since_last = now - alert.last_notification_at

        until_next = None
        tier = policy.tier(current)
        if alert.is_open and tier is not None:
            elapsed = now - (alert.last_notification_at or alert.fired_at)
            until_next = max(tier.delay - elapsed, datetime.timedelta(0))

        status = EscalationStatus(
            alert_id=alert.alert_id,
            current_tier=current,
            max_tier=policy.max_tier,
            since_last_notification=since_last,
            until_next_escalation=until_next,
        )
        return status.model_copy(update={"text": _status_text(alert, status, now, self._registry)})


def _status_text(
    alert: ActiveAlert,
    status: EscalationStatus,
    now: datetime.datetime,
    registry: SuppressionRegistry,
) -> str:
    if alert.resolved:
        return "Resolved"
    if alert.acknowledged:
        return "Acknowledged"
    if registry.is_suppressed(alert.to_fact(), now):
        return "Suppressed"
    if status.until_next_escalation is None or status.until_next_escalation <= datetime.timedelta(0):
        return "Escalation Pending"
    minutes = int(status.until_next_escalation.total_seconds() // 60)
    if status.at_max_tier and alert.notification_count > 0:
        return f"Max Tier Reached (repeat in {minutes}m)"
    return f"Tier {status.current_tier} (Next in {minutes}m)"
