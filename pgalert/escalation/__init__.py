"""Escalation — policy resolution and the periodic escalation engine."""

from pgalert.escalation.engine import EscalationEngine
from pgalert.escalation.policy import (
    DEFAULT_POLICY_ID,
    PolicyResolver,
    default_policy,
    validate_policy,
)

__all__ = [
    "DEFAULT_POLICY_ID",
    "EscalationEngine",
    "PolicyResolver",
    "default_policy",
    "validate_policy",
]
