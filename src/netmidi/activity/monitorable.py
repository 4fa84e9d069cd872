"""Activity timestamps and the protocol for objects that expose them."""

import threading
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Optional, Protocol, runtime_checkable

# Reported for activities that were never observed.
NEVER = datetime.min.replace(tzinfo=timezone.utc)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


@runtime_checkable
class ActivityMonitorable(Protocol):
    """
    Object that tracks the last time each of its named activities happened.

    `last_activity(None)` refers to the object as a whole and equals the
    latest of its named activities. Unknown activities report NEVER.
    """

    @property
    def monitorable_activities(self) -> frozenset[str]:
        """Names of the activities this object tracks."""
        ...

    def last_activity(self, activity: Optional[str] = None) -> datetime:
        """Timestamp of the last occurrence of an activity (or of any activity)."""
        ...


class ActivityRecord:
    """
    Thread-safe map from activity name to last-observed timestamp.

    Every known activity starts at NEVER.

    Example:
        ```python
        record = ActivityRecord(["Tx", "Rx"])
        record.touch("Rx")
        record.get("Rx")     # just now
        record.get("Tx")     # NEVER
        record.latest()      # same as record.get("Rx")
        ```
    """

    def __init__(self, activities: Iterable[str] = ()):
        self._lock = threading.Lock()
        self._timestamps: dict[str, datetime] = {name: NEVER for name in activities}

    @property
    def activities(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._timestamps)

    def touch(self, activity: str, when: Optional[datetime] = None) -> None:
        """Record an occurrence of an activity (now, unless given)."""
        with self._lock:
            self._timestamps[activity] = when or utc_now()

    def get(self, activity: Optional[str] = None) -> datetime:
        """Last occurrence of an activity; None means any activity."""
        if activity is None:
            return self.latest()
        with self._lock:
            return self._timestamps.get(activity, NEVER)

    def latest(self) -> datetime:
        """Latest occurrence over all activities (NEVER if none)."""
        with self._lock:
            return max(self._timestamps.values(), default=NEVER)

