"""Silences — time-bounded matcher rules that suppress alert facts."""

from __future__ import annotations

import datetime
import uuid
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pgalert.core.clock import as_utc
from pgalert.core.exceptions import ConfigurationError
from pgalert.core.types import AlertFact
from pgalert.suppression.matcher import Matcher


class SilenceStatus(StrEnum):
    ACTIVE = "ACTIVE"
    PENDING = "PENDING"
    EXPIRED = "EXPIRED"


def _new_id() -> str:
    return uuid.uuid4().hex


class Silence(BaseModel):
    """Suppresses every fact matching all of its matchers while active.

    A silence without matchers suppresses everything inside its window.
    Both window boundaries are exclusive, and a silence with an unset
    boundary is never active. Naive bounds are read as UTC.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    name: str = ""
    description: str = ""
    matchers: tuple[Matcher, ...] = ()
    start_time: datetime.datetime | None = None
    end_time: datetime.datetime | None = None
    created_by: str | None = None
    created_at: datetime.datetime | None = None

    @field_validator("start_time", "end_time", "created_at")
    @classmethod
    def _utc(cls, v: datetime.datetime | None) -> datetime.datetime | None:
        return as_utc(v)

    def is_active(self, now: datetime.datetime) -> bool:
        if self.start_time is None or self.end_time is None:
            return False
        return self.start_time < now < self.end_time

    def matches(self, fact: AlertFact, now: datetime.datetime) -> bool:
        """Return True if the silence is active and every matcher matches.

        Raises ConfigurationError when a REGEX matcher has a malformed
        pattern; the registry treats that as not matching.
        """
        if not self.is_active(now):
            return False
        return all(m.matches_fact(fact) for m in self.matchers)

    def status(self, now: datetime.datetime) -> SilenceStatus:
        if self.is_active(now):
            return SilenceStatus.ACTIVE
        if self.end_time is not None and self.end_time <= now:
            return SilenceStatus.EXPIRED
        return SilenceStatus.PENDING

    def remaining(self, now: datetime.datetime) -> datetime.timedelta:
        if self.end_time is None:
            return datetime.timedelta(0)
        return max(self.end_time - now, datetime.timedelta(0))


def validate_silence(silence: Silence) -> None:
    """Check a silence before it is stored.

    Raises:
        ConfigurationError: bounds missing, naive or not ordered, or a bad regex.
    """
    if silence.start_time is None or silence.end_time is None:
        raise ConfigurationError(f"Silence {silence.name!r} needs start and end times")
    if silence.start_time.tzinfo is None or silence.end_time.tzinfo is None:
        raise ConfigurationError(f"Silence {silence.name!r} has timezone-naive bounds")
    if silence.start_time >= silence.end_time:
        raise ConfigurationError(
            f"Silence {silence.name!r} must start before it ends"
        )
    for matcher in silence.matchers:
        matcher.validate_pattern()
