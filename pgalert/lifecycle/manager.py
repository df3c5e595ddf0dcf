"""AlertManager — inbound alert facts, lifecycle actions and rule administration."""

from __future__ import annotations

import datetime

import structlog

from pgalert.core.clock import Clock, utc_now
from pgalert.core.config import HousekeepingConfig
from pgalert.core.exceptions import AlertNotFoundError
from pgalert.core.types import ActiveAlert, AlertFact, AlertStats
from pgalert.lifecycle.store import AlertStore
from pgalert.lifecycle.transitions import (
    acknowledge,
    open_alert,
    record_occurrence,
    resolve,
)
from pgalert.notify.dispatcher import NotificationSink
from pgalert.storage.base import MaintenanceWindowRepository, SilenceRepository
from pgalert.storage.memory import (
    InMemoryMaintenanceWindowRepository,
    InMemorySilenceRepository,
)
from pgalert.suppression.maintenance import MaintenanceWindow, validate_window
from pgalert.suppression.matcher import Matcher, MatchOperator
from pgalert.suppression.registry import SuppressionRegistry
from pgalert.suppression.silence import Silence, validate_silence

logger = structlog.get_logger(__name__)


class AlertManager:
    """Entry point for alert producers and operators.

    Producers call :meth:`submit_alert_fact`; the fact is checked against
    the suppression registry before any record changes. Operators
    acknowledge and resolve alerts and administer silences and maintenance
    windows; every rule change is persisted and pushed into the registry.
    """

    def __init__(
        self,
        store: AlertStore,
        registry: SuppressionRegistry,
        sink: NotificationSink | None = None,
        silences: SilenceRepository | None = None,
        windows: MaintenanceWindowRepository | None = None,
        housekeeping: HousekeepingConfig | None = None,
        clock: Clock = utc_now,
        default_policy_id: str | None = None,
    ) -> None:
        self._store = store
        self._registry = registry
        self._sink = sink
        self._silences = silences or InMemorySilenceRepository()
        self._windows = windows or InMemoryMaintenanceWindowRepository()
        self._housekeeping = housekeeping or HousekeepingConfig()
        self._clock = clock
        self._default_policy_id = default_policy_id

    @property
    def registry(self) -> SuppressionRegistry:
        return self._registry

    @property
    def silence_repository(self) -> SilenceRepository:
        return self._silences

    @property
    def window_repository(self) -> MaintenanceWindowRepository:
        return self._windows

    async def refresh_suppression(self) -> None:
        """Reload the registry snapshot from the repositories."""
        await self._registry.reload(self._silences, self._windows)

    # ── Alert facts ─────────────────────────────────────────────

    async def submit_alert_fact(
        self,
        fact: AlertFact,
        policy_id: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> ActiveAlert | None:
        """Record a fired condition.

        Returns None when the fact is suppressed (nothing is recorded);
        otherwise the new or refreshed open record for the fact's identity.
        """
        now = self._clock()
        alert_id = fact.identity

        async with self._store.lock(alert_id):
            decision = self._registry.explain(fact, now)
            if decision is not None:
                logger.debug(
                    "alert_suppressed",
                    alert_id=alert_id,
                    kind=decision.kind.value,
                    rule=decision.rule_name,
                )
                return None

            existing = await self._store.find_open(alert_id)
            if existing is not None:
                return await self._store.save(record_occurrence(existing, fact, now))

            alert = open_alert(
                fact,
                now,
                policy_id=policy_id or self._default_policy_id,
                metadata=metadata,
            )
            await self._store.save(alert)

        logger.info(
            "alert_fired",
            alert_id=alert_id,
            severity=fact.severity,
            type=fact.type,
            instance=fact.instance_name,
        )
        return alert

    async def acknowledge(self, record_id: str, by: str | None = None) -> ActiveAlert:
        """Acknowledge an alert record.

        Raises:
            AlertNotFoundError: no record with this id.
            InvalidTransitionError: the alert is already resolved.
        """
        alert_id = await self._alert_id_of(record_id)
        async with self._store.lock(alert_id):
            alert = await self._require(record_id)
            updated = acknowledge(alert, self._clock(), by)
            if updated is alert:
                return alert
            await self._store.save(updated)

        logger.info("alert_acknowledged", alert_id=alert_id, by=by or "system")
        return updated

    async def resolve(
        self,
        record_id: str,
        by: str | None = None,
        notify: bool = False,
    ) -> ActiveAlert:
        """Resolve an alert record; optionally announce it through the sink.

        Raises:
            AlertNotFoundError: no record with this id.
        """
        alert_id = await self._alert_id_of(record_id)
        async with self._store.lock(alert_id):
            alert = await self._require(record_id)
            updated = resolve(alert, self._clock(), by)
            if updated is alert:
                return alert
            await self._store.save(updated)

        logger.info("alert_resolved", alert_id=alert_id, by=by or "system")
        if notify:
            await self._announce_resolution(updated)
        return updated

    async def resolve_condition(
        self, fact: AlertFact, notify: bool = False,
    ) -> ActiveAlert | None:
        """Resolve the open alert for a fact whose condition has cleared."""
        alert_id = fact.identity
        async with self._store.lock(alert_id):
            alert = await self._store.find_open(alert_id)
            if alert is None:
                return None
            updated = await self._store.save(resolve(alert, self._clock(), "condition_cleared"))

        logger.info("alert_condition_cleared", alert_id=alert_id)
        if notify:
            await self._announce_resolution(updated)
        return updated

    async def open_alerts(self) -> list[ActiveAlert]:
        return await self._store.list_open()

    async def recent_alerts(self, limit: int = 100) -> list[ActiveAlert]:
        return await self._store.list_recent(limit)

    async def get_alert(self, record_id: str) -> ActiveAlert | None:
        return await self._store.get(record_id)

    async def _require(self, record_id: str) -> ActiveAlert:
        alert = await self._store.get(record_id)
        if alert is None:
            raise AlertNotFoundError(f"No alert with id {record_id!r}")
        return alert

    async def _alert_id_of(self, record_id: str) -> str:
        return (await self._require(record_id)).alert_id

    async def _announce_resolution(self, alert: ActiveAlert) -> None:
        if self._sink is None:
            return
        try:
            await self._sink.notify_resolution(alert)
        except Exception:
            logger.exception("resolution_notify_error", alert_id=alert.alert_id)

    # ── Silences ────────────────────────────────────────────────

    async def create_silence(self, silence: Silence) -> Silence:
        """Validate and store a silence.

        Raises:
            ConfigurationError: invalid bounds or regex.
        """
        if silence.created_at is None:
            silence = silence.model_copy(update={"created_at": self._clock()})
        validate_silence(silence)
        saved = await self._silences.save(silence)
        self._registry.add_silence(saved)
        logger.info(
            "silence_created",
            silence_id=saved.id,
            name=saved.name,
            end_time=saved.end_time.isoformat() if saved.end_time else None,
            matchers=[m.display_text for m in saved.matchers],
        )
        return saved

    async def create_quick_silence(
        self,
        alert_type: str | None,
        instance_name: str | None,
        duration: datetime.timedelta,
        created_by: str | None = None,
    ) -> Silence:
        """Silence one alert type (and optionally instance) from now for *duration*."""
        now = self._clock()
        matchers: list[Matcher] = []
        if alert_type is not None:
            matchers.append(
                Matcher(field="alertType", operator=MatchOperator.EQUALS, value=alert_type)
            )
        if instance_name is not None:
            matchers.append(
                Matcher(field="instanceName", operator=MatchOperator.EQUALS, value=instance_name)
            )
        silence = Silence(
            name=f"Quick silence: {alert_type}",
            matchers=tuple(matchers),
            # Starts a moment in the past so it is active immediately.
            start_time=now - datetime.timedelta(seconds=1),
            end_time=now + duration,
            created_by=created_by,
            created_at=now,
        )
        return await self.create_silence(silence)

    async def expire_silence(self, silence_id: str) -> Silence | None:
        """End a silence now, keeping it for history."""
        silence = await self._silences.get(silence_id)
        if silence is None:
            return None
        expired = silence.model_copy(update={"end_time": self._clock()})
        await self._silences.save(expired)
        self._registry.add_silence(expired)
        logger.info("silence_expired", silence_id=silence_id)
        return expired

    async def delete_silence(self, silence_id: str) -> bool:
        removed = await self._silences.delete(silence_id)
        self._registry.remove_silence(silence_id)
        return removed

    async def list_silences(self) -> list[Silence]:
        return await self._silences.list()

    async def active_silences(self) -> list[Silence]:
        now = self._clock()
        return [s for s in await self._silences.list() if s.is_active(now)]

    # ── Maintenance windows ─────────────────────────────────────

    async def create_maintenance_window(self, window: MaintenanceWindow) -> MaintenanceWindow:
        """Validate and store a maintenance window.

        Raises:
            ConfigurationError: invalid bounds or recurrence.
        """
        now = self._clock()
        window = window.model_copy(update={
            "created_at": window.created_at or now,
            "updated_at": now,
        })
        validate_window(window)
        saved = await self._windows.save(window)
        self._registry.add_window(saved)
        logger.info(
            "maintenance_window_created",
            window_id=saved.id,
            name=saved.name,
            start_time=saved.start_time.isoformat() if saved.start_time else None,
            end_time=saved.end_time.isoformat() if saved.end_time else None,
            recurrence=saved.recurrence_pattern.value,
        )
        return saved

    async def update_maintenance_window(self, window: MaintenanceWindow) -> MaintenanceWindow:
        if await self._windows.get(window.id) is None:
            raise AlertNotFoundError(f"No maintenance window with id {window.id!r}")
        window = window.model_copy(update={"updated_at": self._clock()})
        validate_window(window)
        saved = await self._windows.save(window)
        self._registry.add_window(saved)
        logger.info("maintenance_window_updated", window_id=saved.id, name=saved.name)
        return saved

    async def delete_maintenance_window(self, window_id: str) -> bool:
        removed = await self._windows.delete(window_id)
        self._registry.remove_window(window_id)
        return removed

    async def list_maintenance_windows(self) -> list[MaintenanceWindow]:
        return await self._windows.list()

    async def active_maintenance_windows(self) -> list[MaintenanceWindow]:
        return self._registry.active_windows(self._clock())

    async def upcoming_maintenance_windows(self) -> list[MaintenanceWindow]:
        """Next occurrence of every window that has not started yet, soonest first."""
        now = self._clock()
        expander = self._registry.expander
        upcoming: list[MaintenanceWindow] = []
        for window in await self._windows.list():
            if window.id in self._registry.config_issues:
                continue
            occurrence = expander.next_occurrence(window, now)
            if occurrence is not None:
                upcoming.append(occurrence)
        return sorted(upcoming, key=lambda w: w.start_time or now)

    # ── Statistics and cleanup ──────────────────────────────────

    async def stats(self) -> AlertStats:
        now = self._clock()
        active = await self._store.list_open()
        recent = await self._store.list_recent(1000)
        day_ago = now - datetime.timedelta(hours=24)

        return AlertStats(
            active_count=len(active),
            critical_count=sum(
                1 for a in active if (a.alert_severity or "").upper() == "CRITICAL"
            ),
            unacknowledged_count=sum(1 for a in active if not a.acknowledged),
            resolved_last_24h=sum(
                1 for a in recent
                if a.resolved and a.resolved_at is not None and a.resolved_at > day_ago
            ),
            active_silences=len(self._registry.active_silences(now)),
            active_maintenance_windows=len(self._registry.active_windows(now)),
        )

    async def cleanup(self) -> tuple[int, int]:
        """Delete old resolved alerts and long-expired silences.

        Returns:
            (deleted_alerts, deleted_silences)
        """
        now = self._clock()
        cfg = self._housekeeping
        deleted_alerts = await self._store.repository.delete_resolved_before(
            now - datetime.timedelta(days=cfg.alert_retention_days),
        )
        deleted_silences = await self._silences.delete_expired_before(
            now - datetime.timedelta(days=cfg.silence_retention_days),
        )
        if deleted_silences:
            await self.refresh_suppression()
        logger.info(
            "cleanup_completed",
            deleted_alerts=deleted_alerts,
            deleted_silences=deleted_silences,
        )
        return deleted_alerts, deleted_silences
