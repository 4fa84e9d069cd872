"""Periodic liveness monitor over an ActivityMonitorable."""

import logging
import threading
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Optional

from netmidi.exceptions import InvalidArgumentError
from netmidi.protocols import ActivityObserver, ServiceStatus
from netmidi.service import CompositeService
from netmidi.utils import ObserverManager

from .monitorable import ActivityMonitorable, utc_now

logger = logging.getLogger(__name__)


class ActivityMonitor(CompositeService):
    """
    Service that turns activity timestamps into boolean liveness events.

    While ACTIVE, a polling thread checks every `check_interval` seconds
    whether each monitored activity happened within the last `timeout`
    seconds, and notifies ActivityObservers of every change (the first poll
    reports the initial state of every monitored activity). When stopped,
    it reports every activity of the monitorable as inactive, so that
    consumers never keep a stale "active" reading.

    Example:
        ```python
        monitor = ActivityMonitor(midi_service, ["Rx", "Tx"], timeout=0.5)
        monitor.register_activity_observer(led_panel)
        monitor.start()
        ```
    """

    DEFAULT_CHECK_INTERVAL = 0.1
    DEFAULT_TIMEOUT = 0.25

    def __init__(
        self,
        monitorable: ActivityMonitorable,
        activities: Optional[Iterable[str]] = None,
        *,
        check_interval: float = DEFAULT_CHECK_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
        name: Optional[str] = None,
    ):
        """
        Initialize the monitor.

        Args:
            monitorable: Object exposing the activity timestamps
            activities: Names to monitor; names the monitorable does not track
                are dropped. None monitors all of them.
            check_interval: Seconds between polls (> 0)
            timeout: Seconds an activity stays "active" after it happened (>= 0)
            name: Service name (defaults to one derived from the monitorable)
        """
        if monitorable is None:
            raise InvalidArgumentError("monitorable", None, "must not be None")
        super().__init__(tasks=[self._poll], name=name or f"ActivityMonitor[{monitorable}]")
        self._monitorable = monitorable
        available = monitorable.monitorable_activities
        requested = sorted(available) if activities is None else list(dict.fromkeys(activities))
        self._monitored = tuple(a for a in requested if a is not None and a in available)
        self._check_interval = 0.0
        self._timeout = 0.0
        self.check_interval = check_interval
        self.timeout = timeout
        self._activity_observers = ObserverManager[ActivityObserver](observer_type_name="activity")

    @property
    def monitorable(self) -> ActivityMonitorable:
        return self._monitorable

    @property
    def monitored_activities(self) -> tuple[str, ...]:
        return self._monitored

    @property
    def check_interval(self) -> float:
        return self._check_interval

    @check_interval.setter
    def check_interval(self, seconds: float) -> None:
        if seconds <= 0:
            raise InvalidArgumentError("check_interval", seconds, "must be positive")
        self._check_interval = seconds

    @property
    def timeout(self) -> float:
        return self._timeout

    @timeout.setter
    def timeout(self, seconds: float) -> None:
        if seconds < 0:
            raise InvalidArgumentError("timeout", seconds, "must not be negative")
        self._timeout = seconds

    def register_activity_observer(self, observer: ActivityObserver) -> None:
        self._activity_observers.register(observer)

    def unregister_activity_observer(self, observer: ActivityObserver) -> None:
        self._activity_observers.unregister(observer)

    def is_active(self, activity: str) -> bool:
        """
        Check whether a monitored activity happened within the timeout.

        Always False while the monitor is not ACTIVE or for unmonitored names.
        """
        if self.status is not ServiceStatus.ACTIVE or activity not in self._monitored:
            return False
        return self._within_timeout(self._monitorable.last_activity(activity), utc_now())

    def _within_timeout(self, last: datetime, now: datetime) -> bool:
        return now - last <= timedelta(seconds=self._timeout)

    def _fire_activity_changed(self, activity: str, active: bool) -> None:
        self._activity_observers.notify("on_activity_changed", activity, active)

    def _poll(self, stop: threading.Event) -> None:
        logger.info(f"Starting activity monitor {self} on {self._monitorable}")
        states: dict[str, bool] = {}
        try:
            while not stop.is_set():
                now = utc_now()
                changed = []
                for activity in self._monitored:
                    active = self._within_timeout(self._monitorable.last_activity(activity), now)
                    if states.get(activity) != active:
                        states[activity] = active
                        changed.append(activity)
                for activity in changed:
                    self._fire_activity_changed(activity, states[activity])
                stop.wait(self._check_interval)
        finally:
            # Consumers always end on a falsy state, even when polling failed.
            for activity in sorted(self._monitorable.monitorable_activities):
                self._fire_activity_changed(activity, False)
        logger.info(f"Terminating activity monitor {self} on {self._monitorable}")
