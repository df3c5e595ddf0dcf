"""Repository interfaces and in-memory implementations."""

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

__all__ = [
    "ActiveAlertRepository",
    "EscalationPolicyRepository",
    "InMemoryActiveAlertRepository",
    "InMemoryEscalationPolicyRepository",
    "InMemoryMaintenanceWindowRepository",
    "InMemorySilenceRepository",
    "MaintenanceWindowRepository",
    "SilenceRepository",
]
