"""Tests for MaintenanceWindow — activity, filters, null bypass, validation."""

from __future__ import annotations

import datetime

import pytest

from pgalert.core.exceptions import ConfigurationError
from pgalert.suppression.maintenance import (
    MaintenanceWindow,
    RecurrencePattern,
    WindowStatus,
    validate_window,
)

T0 = datetime.datetime(2026, 3, 1, 2, 0, tzinfo=datetime.UTC)
HOUR = datetime.timedelta(hours=1)
INSIDE = T0 + HOUR / 2


def _window(**kw: object) -> MaintenanceWindow:
    defaults: dict[str, object] = {
        "name": "nightly",
        "start_time": T0,
        "end_time": T0 + HOUR,
    }
    defaults.update(kw)
    return MaintenanceWindow(**defaults)  # type: ignore[arg-type]


# ── Activity ────────────────────────────────────────────────────


class TestIsActiveNow:
    def test_inside(self) -> None:
        assert _window().is_active_now(INSIDE) is True

    def test_boundaries_exclusive(self) -> None:
        w = _window()
        assert w.is_active_now(T0) is False
        assert w.is_active_now(T0 + HOUR) is False

    def test_unset_bounds(self) -> None:
        assert _window(start_time=None).is_active_now(INSIDE) is False
        assert _window(end_time=None).is_active_now(INSIDE) is False


# ── Filters ─────────────────────────────────────────────────────


class TestSuppressesAlert:
    def test_inactive_never_suppresses(self) -> None:
        w = _window(instance_filter=["prod-db-1"], alert_type_filter=["X"])
        for now in (T0 - HOUR, T0, T0 + HOUR, T0 + 2 * HOUR):
            assert w.suppresses_alert("prod-db-1", "X", now) is False
            assert w.suppresses_alert(None, None, now) is False

    def test_no_filters_suppresses_everything(self) -> None:
        w = _window()
        assert w.suppresses_alert("any", "ANY", INSIDE) is True
        assert w.suppresses_alert(None, None, INSIDE) is True

    def test_instance_filter_scenario(self) -> None:
        w = _window(instance_filter=["prod-db-1"], alert_type_filter=[])
        assert w.suppresses_alert("prod-db-1", "X", INSIDE) is True
        assert w.suppresses_alert("prod-db-2", "X", INSIDE) is False

    def test_null_instance_bypasses_filter(self) -> None:
        w = _window(instance_filter=["prod-db-1"])
        assert w.suppresses_alert(None, "X", INSIDE) is True

    def test_alert_type_filter(self) -> None:
        w = _window(alert_type_filter=["LONG_RUNNING_QUERY"])
        assert w.suppresses_alert("db", "LONG_RUNNING_QUERY", INSIDE) is True
        assert w.suppresses_alert("db", "REPLICATION_LAG", INSIDE) is False
        assert w.suppresses_alert("db", None, INSIDE) is True

    def test_both_filters_must_pass(self) -> None:
        w = _window(instance_filter=["prod-db-1"], alert_type_filter=["LOCKS"])
        assert w.suppresses_alert("prod-db-1", "LOCKS", INSIDE) is True
        assert w.suppresses_alert("prod-db-1", "CPU", INSIDE) is False
        assert w.suppresses_alert("prod-db-2", "LOCKS", INSIDE) is False

    def test_membership_is_exact(self) -> None:
        w = _window(instance_filter=["prod-db-1"])
        assert w.suppresses_alert("PROD-DB-1", None, INSIDE) is False


# ── Helpers ─────────────────────────────────────────────────────


class TestHelpers:
    def test_duration(self) -> None:
        assert _window().duration == HOUR
        assert _window(end_time=None).duration == datetime.timedelta(0)

    def test_status(self) -> None:
        w = _window()
        assert w.status(T0 - HOUR) is WindowStatus.SCHEDULED
        assert w.status(INSIDE) is WindowStatus.ACTIVE
        assert w.status(T0 + HOUR) is WindowStatus.ENDED

    def test_shifted_to_keeps_duration(self) -> None:
        start = T0 + datetime.timedelta(days=1)
        shifted = _window(instance_filter=["a"]).shifted_to(start)
        assert shifted.start_time == start
        assert shifted.end_time == start + HOUR
        assert shifted.instance_filter == frozenset({"a"})

    def test_pattern_parsed_case_insensitively(self) -> None:
        assert _window(recurrence_pattern="weekly").recurrence_pattern is RecurrencePattern.WEEKLY
        assert _window(recurrence_pattern=None).recurrence_pattern is RecurrencePattern.NONE

    def test_repeats(self) -> None:
        assert _window(recurring=True, recurrence_pattern="DAILY").repeats is True
        assert _window(recurring=False, recurrence_pattern="DAILY").repeats is False
        assert _window(recurring=True).repeats is False


# ── Validation ──────────────────────────────────────────────────


class TestValidateWindow:
    def test_valid(self) -> None:
        validate_window(_window())

    def test_missing_bounds(self) -> None:
        with pytest.raises(ConfigurationError):
            validate_window(_window(start_time=None))

    def test_reversed_bounds(self) -> None:
        with pytest.raises(ConfigurationError):
            validate_window(_window(end_time=T0 - HOUR))

    def test_custom_without_expression(self) -> None:
        with pytest.raises(ConfigurationError):
            validate_window(_window(recurring=True, recurrence_pattern="CUSTOM"))

    def test_custom_with_expression(self) -> None:
        validate_window(
            _window(recurring=True, recurrence_pattern="CUSTOM", cron_expression="0 2 * * 0"),
        )

    def test_naive_bounds_read_as_utc(self) -> None:
        w = _window(
            start_time=datetime.datetime(2026, 3, 1, 2, 0),
            end_time=datetime.datetime(2026, 3, 1, 3, 0),
        )
        assert w.start_time == T0
        validate_window(w)
        assert w.is_active_now(INSIDE)

    def test_naive_bound_bypassing_validation_rejected(self) -> None:
        naive = _window().model_copy(update={"start_time": datetime.datetime(2026, 3, 1, 2, 0)})
        with pytest.raises(ConfigurationError, match="naive"):
            validate_window(naive)
