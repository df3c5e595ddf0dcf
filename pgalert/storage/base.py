"""Repository interfaces the engine depends on.

No storage format is mandated; implementations only need to honour these
async contracts.
"""

from __future__ import annotations

import abc
import datetime

from pgalert.core.types import ActiveAlert, EscalationPolicy
from pgalert.suppression.maintenance import MaintenanceWindow
from pgalert.suppression.silence import Silence


class SilenceRepository(abc.ABC):
    @abc.abstractmethod
    async def list(self) -> list[Silence]: ...

    @abc.abstractmethod
    async def get(self, silence_id: str) -> Silence | None: ...

    @abc.abstractmethod
    async def save(self, silence: Silence) -> Silence:
        """Insert or replace by id."""

    @abc.abstractmethod
    async def delete(self, silence_id: str) -> bool:
        """Return True if a silence was removed."""

    @abc.abstractmethod
    async def delete_expired_before(self, cutoff: datetime.datetime) -> int:
        """Delete silences that ended before *cutoff*; return the count."""


class MaintenanceWindowRepository(abc.ABC):
    @abc.abstractmethod
    async def list(self) -> list[MaintenanceWindow]: ...

    @abc.abstractmethod
    async def get(self, window_id: str) -> MaintenanceWindow | None: ...

    @abc.abstractmethod
    async def save(self, window: MaintenanceWindow) -> MaintenanceWindow:
        """Insert or replace by id."""

    @abc.abstractmethod
    async def delete(self, window_id: str) -> bool: ...


class ActiveAlertRepository(abc.ABC):
    @abc.abstractmethod
    async def get(self, record_id: str) -> ActiveAlert | None: ...

    @abc.abstractmethod
    async def find_open(self, alert_id: str) -> ActiveAlert | None:
        """Return the unresolved record for a logical alert identity."""

    @abc.abstractmethod
    async def save(self, alert: ActiveAlert) -> ActiveAlert:
        """Insert or replace by record id."""

    @abc.abstractmethod
    async def list_open(self) -> list[ActiveAlert]: ...

    @abc.abstractmethod
    async def list_recent(self, limit: int = 100) -> list[ActiveAlert]:
        """Most recently fired records first, resolved ones included."""

    @abc.abstractmethod
    async def delete_resolved_before(self, cutoff: datetime.datetime) -> int:
        """Delete records resolved before *cutoff*; return the count."""


class EscalationPolicyRepository(abc.ABC):
    @abc.abstractmethod
    async def get(self, policy_id: str) -> EscalationPolicy | None: ...

    @abc.abstractmethod
    async def list(self) -> list[EscalationPolicy]: ...

    @abc.abstractmethod
    async def save(self, policy: EscalationPolicy) -> EscalationPolicy: ...

    @abc.abstractmethod
    async def delete(self, policy_id: str) -> bool: ...
