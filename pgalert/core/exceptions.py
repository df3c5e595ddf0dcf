"""Alerting exceptions."""

from __future__ import annotations


class AlertingError(Exception):
    """Base exception for alerting errors."""


class ConfigurationError(AlertingError):
    """A rule, policy or target is misconfigured (invalid regex, unknown id, bad bounds)."""


class TransientError(AlertingError):
    """A notification could not be delivered; retried on the next tick."""


class InvalidTransitionError(AlertingError):
    """An alert lifecycle transition is not allowed from the current state."""


class AlertNotFoundError(AlertingError):
    """No alert record exists for the requested id."""
