"""Alert lifecycle — transitions, per-identity locking and the alert manager."""

from pgalert.lifecycle.housekeeping import HousekeepingScheduler
from pgalert.lifecycle.manager import AlertManager
from pgalert.lifecycle.store import AlertStore
from pgalert.lifecycle.transitions import (
    acknowledge,
    open_alert,
    record_notification,
    record_occurrence,
    resolve,
)

__all__ = [
    "AlertManager",
    "AlertStore",
    "HousekeepingScheduler",
    "acknowledge",
    "open_alert",
    "record_notification",
    "record_occurrence",
    "resolve",
]
