"""AlertStore — the ActiveAlert repository plus one lock per alert identity."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator

from pgalert.core.types import ActiveAlert
from pgalert.storage.base import ActiveAlertRepository
from pgalert.storage.memory import InMemoryActiveAlertRepository


class _IdentityLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class AlertStore:
    """Serialises every read-modify-write of a logical alert.

    Submission, acknowledgement, resolution and escalation all enter
    ``lock(alert_id)`` and re-read the record inside it, so a concurrent
    acknowledgement and an in-flight escalation tick cannot interleave.
    A lock exists only while some task holds or awaits it.
    """

    def __init__(self, repository: ActiveAlertRepository | None = None) -> None:
        self._repo = repository or InMemoryActiveAlertRepository()
        self._locks: dict[str, _IdentityLock] = {}

    @property
    def repository(self) -> ActiveAlertRepository:
        return self._repo

    @property
    def lock_count(self) -> int:
        return len(self._locks)

    @contextlib.asynccontextmanager
    async def lock(self, alert_id: str) -> AsyncIterator[None]:
        entry = self._locks.get(alert_id)
        if entry is None:
            entry = self._locks[alert_id] = _IdentityLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[alert_id]

    async def get(self, record_id: str) -> ActiveAlert | None:
        return await self._repo.get(record_id)

    async def find_open(self, alert_id: str) -> ActiveAlert | None:
        return await self._repo.find_open(alert_id)

    async def save(self, alert: ActiveAlert) -> ActiveAlert:
        return await self._repo.save(alert)

    async def list_open(self) -> list[ActiveAlert]:
        return await self._repo.list_open()

    async def list_recent(self, limit: int = 100) -> list[ActiveAlert]:
        return await self._repo.list_recent(limit)
