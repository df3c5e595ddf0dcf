"""Injectable time source."""

from __future__ import annotations

import datetime
from typing import Callable

# Returns the current instant as an aware UTC datetime.
Clock = Callable[[], datetime.datetime]


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def as_utc(value: datetime.datetime | None) -> datetime.datetime | None:
    """Normalise a rule timestamp to aware UTC.

    Naive values (``datetime(2026, 1, 1)``, YAML timestamps without an
    offset) are taken to be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=datetime.UTC)
    return value.astimezone(datetime.UTC)
