"""Core module — exceptions, shared types and the clock.

Config and logging are imported from their modules directly
(``pgalert.core.config``, ``pgalert.core.logging``).
"""

from pgalert.core.clock import Clock, utc_now
from pgalert.core.exceptions import (
    AlertingError,
    AlertNotFoundError,
    ConfigurationError,
    InvalidTransitionError,
    TransientError,
)
from pgalert.core.types import (
    ActiveAlert,
    AlertFact,
    AlertState,
    AlertStats,
    EscalationEvent,
    EscalationPolicy,
    EscalationStatus,
    EscalationTier,
)

__all__ = [
    "ActiveAlert",
    "AlertFact",
    "AlertNotFoundError",
    "AlertState",
    "AlertStats",
    "AlertingError",
    "Clock",
    "ConfigurationError",
    "EscalationEvent",
    "EscalationPolicy",
    "EscalationStatus",
    "EscalationTier",
    "InvalidTransitionError",
    "TransientError",
    "utc_now",
]
