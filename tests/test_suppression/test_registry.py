"""Tests for SuppressionRegistry — aggregation, explain, misconfigured rules."""

from __future__ import annotations

import datetime
from unittest.mock import patch

from pgalert.core.types import AlertFact
from pgalert.storage.memory import (
    InMemoryMaintenanceWindowRepository,
    InMemorySilenceRepository,
)
from pgalert.suppression.maintenance import MaintenanceWindow
from pgalert.suppression.matcher import Matcher, MatchOperator
from pgalert.suppression.registry import SuppressionKind, SuppressionRegistry
from pgalert.suppression.silence import Silence

T0 = datetime.datetime(2026, 3, 1, 2, 0, tzinfo=datetime.UTC)
HOUR = datetime.timedelta(hours=1)
NOW = T0 + datetime.timedelta(minutes=30)

FACT = AlertFact(
    type="LONG_RUNNING_QUERY",
    severity="WARNING",
    instance_name="prod-db-1",
    message="query running for 12m",
)


def _silence(*matchers: Matcher, **kw: object) -> Silence:
    defaults: dict[str, object] = {
        "name": "staging",
        "matchers": matchers,
        "start_time": T0,
        "end_time": T0 + HOUR,
    }
    defaults.update(kw)
    return Silence(**defaults)  # type: ignore[arg-type]


def _window(**kw: object) -> MaintenanceWindow:
    defaults: dict[str, object] = {
        "name": "vacuum",
        "start_time": T0,
        "end_time": T0 + HOUR,
    }
    defaults.update(kw)
    return MaintenanceWindow(**defaults)  # type: ignore[arg-type]


# ── Explain ─────────────────────────────────────────────────────


class TestExplain:
    def test_empty_registry(self) -> None:
        registry = SuppressionRegistry()
        assert registry.explain(FACT, NOW) is None
        assert registry.is_suppressed(FACT, NOW) is False

    def test_silence(self) -> None:
        registry = SuppressionRegistry()
        silence = _silence(Matcher(field="instance", operator=MatchOperator.EQUALS, value="prod-db-1"))
        registry.add_silence(silence)
        decision = registry.explain(FACT, NOW)
        assert decision is not None
        assert decision.kind is SuppressionKind.SILENCE
        assert decision.rule_id == silence.id

    def test_window(self) -> None:
        registry = SuppressionRegistry()
        window = _window(instance_filter=["prod-db-1"])
        registry.add_window(window)
        decision = registry.explain(FACT, NOW)
        assert decision is not None
        assert decision.kind is SuppressionKind.MAINTENANCE
        assert decision.rule_name == "vacuum"

    def test_window_filter_excludes(self) -> None:
        registry = SuppressionRegistry()
        registry.add_window(_window(instance_filter=["prod-db-2"]))
        assert registry.is_suppressed(FACT, NOW) is False

    def test_recurring_window(self) -> None:
        registry = SuppressionRegistry()
        registry.add_window(_window(recurring=True, recurrence_pattern="DAILY"))
        assert registry.is_suppressed(FACT, NOW + datetime.timedelta(days=3)) is True
        assert registry.is_suppressed(FACT, NOW + datetime.timedelta(days=3, hours=2)) is False

    def test_silence_checked_before_windows(self) -> None:
        registry = SuppressionRegistry()
        registry.replace([_silence()], [_window()])
        decision = registry.explain(FACT, NOW)
        assert decision is not None
        assert decision.kind is SuppressionKind.SILENCE

    def test_outside_all_rules(self) -> None:
        registry = SuppressionRegistry()
        registry.replace([_silence()], [_window()])
        assert registry.explain(FACT, T0 + 2 * HOUR) is None


# ── Misconfigured rules ─────────────────────────────────────────


class TestMisconfigured:
    def test_bad_regex_fails_closed(self) -> None:
        registry = SuppressionRegistry()
        bad = _silence(Matcher(field="message", operator=MatchOperator.REGEX, value="(unclosed"))
        registry.add_silence(bad)
        assert bad.id in registry.config_issues
        assert registry.is_suppressed(FACT, NOW) is False

    def test_bad_regex_does_not_hide_other_rules(self) -> None:
        registry = SuppressionRegistry()
        bad = _silence(Matcher(field="message", operator=MatchOperator.REGEX, value="["))
        registry.replace([bad, _silence(name="all")], [])
        decision = registry.explain(FACT, NOW)
        assert decision is not None
        assert decision.rule_name == "all"

    def test_bad_custom_cron(self) -> None:
        registry = SuppressionRegistry()
        window = _window(recurring=True, recurrence_pattern="CUSTOM", cron_expression="nope")
        registry.add_window(window)
        assert window.id in registry.config_issues
        assert registry.is_suppressed(FACT, NOW) is False
        assert registry.active_windows(NOW) == []

    def test_issues_cleared_on_removal(self) -> None:
        registry = SuppressionRegistry()
        bad = _silence(Matcher(field="message", operator=MatchOperator.REGEX, value="("))
        registry.add_silence(bad)
        registry.remove_silence(bad.id)
        assert registry.config_issues == {}

    def test_naive_bound_fails_closed(self) -> None:
        registry = SuppressionRegistry()
        naive = _silence().model_copy(update={"end_time": datetime.datetime(2026, 3, 1, 3, 0)})
        registry.replace([naive], [])
        assert "timezone-naive" in registry.config_issues[naive.id]
        assert registry.explain(FACT, NOW) is None
        assert registry.active_silences(NOW) == []

    def test_naive_window_bound_fails_closed(self) -> None:
        registry = SuppressionRegistry()
        naive = _window(recurring=True, recurrence_pattern="DAILY").model_copy(
            update={"start_time": datetime.datetime(2026, 3, 1, 2, 0)},
        )
        registry.replace([], [naive])
        assert naive.id in registry.config_issues
        assert registry.explain(FACT, NOW + 24 * HOUR) is None
        assert registry.active_windows(NOW) == []

    async def test_reload_logs_each_issue_once(self) -> None:
        bad = _silence(Matcher(field="message", operator=MatchOperator.REGEX, value="("))
        cron = _window(recurring=True, recurrence_pattern="CUSTOM", cron_expression="nope")
        silences = InMemorySilenceRepository([bad])
        windows = InMemoryMaintenanceWindowRepository([cron])
        registry = SuppressionRegistry()
        with patch("pgalert.suppression.registry.logger") as log:
            for _ in range(3):
                await registry.reload(silences, windows)
        events = [c.args[0] for c in log.error.call_args_list]
        assert events == ["silence_misconfigured", "maintenance_window_misconfigured"]
        assert set(registry.config_issues) == {bad.id, cron.id}

    def test_issue_logged_again_after_fix_and_regression(self) -> None:
        bad = _silence(Matcher(field="message", operator=MatchOperator.REGEX, value="("))
        fixed = bad.model_copy(update={"matchers": ()})
        registry = SuppressionRegistry()
        with patch("pgalert.suppression.registry.logger") as log:
            registry.replace([bad], [])
            registry.replace([fixed], [])
            registry.replace([bad], [])
        assert log.error.call_count == 2


# ── Edits and reload ────────────────────────────────────────────


class TestEdits:
    def test_add_replaces_same_id(self) -> None:
        registry = SuppressionRegistry()
        silence = _silence()
        registry.add_silence(silence)
        registry.add_silence(silence.model_copy(update={"end_time": T0 + 2 * HOUR}))
        assert len(registry.silences) == 1
        assert registry.silences[0].end_time == T0 + 2 * HOUR

    def test_remove_window(self) -> None:
        registry = SuppressionRegistry()
        window = _window()
        registry.add_window(window)
        registry.remove_window(window.id)
        assert registry.windows == ()

    def test_snapshot_is_swapped(self) -> None:
        registry = SuppressionRegistry()
        before = registry.snapshot
        registry.add_silence(_silence())
        assert registry.snapshot is not before
        assert before.silences == ()

    async def test_reload(self) -> None:
        silences = InMemorySilenceRepository([_silence()])
        windows = InMemoryMaintenanceWindowRepository([_window(), _window(name="other")])
        registry = SuppressionRegistry()
        await registry.reload(silences, windows)
        assert len(registry.silences) == 1
        assert len(registry.windows) == 2

    def test_active_views(self) -> None:
        registry = SuppressionRegistry()
        registry.replace([_silence()], [_window()])
        assert len(registry.active_silences(NOW)) == 1
        assert len(registry.active_windows(NOW)) == 1
        assert registry.active_silences(T0 + 2 * HOUR) == []
        assert registry.active_windows(T0 + 2 * HOUR) == []
