"""Service lifecycle contract and its reusable base implementation.

Every component in the package (transport, raw MIDI service, MIDI service,
activity monitor, composites) is a Service:

    STOPPED --start()--> ACTIVE --stop()--> STOPPED
        ^                   |
        |                _error()
        |                   v
        +------stop()---- ERROR

Threading:
    Status reads are lock-free attribute reads. Status writes, start, stop,
    restart and toggle are serialized by a per-service reentrant lock, so a
    restart is never observed half-done by a concurrent caller. Status
    observers are always notified after the outermost holder releases the
    lock, so an observer that locks a parent service never waits while this
    service's lock is held.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, Optional

from netmidi.exceptions import InvalidArgumentError, UnsupportedOperationError
from netmidi.protocols import ServiceStatus, SettingsObserver, StatusObserver
from netmidi.utils import ObserverManager

logger = logging.getLogger(__name__)


class Service(ABC):
    """
    The lifecycle contract shared by all services.

    A service starts in STOPPED. Only the service itself changes its status;
    callers drive it through start(), stop(), restart(), toggle() and destroy().
    """

    @property
    @abstractmethod
    def status(self) -> ServiceStatus:
        """Current status (cheap, lock-free read)."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable service name."""

    @abstractmethod
    def start(self) -> None:
        """Start the service; a no-op if already ACTIVE."""

    @abstractmethod
    def stop(self) -> None:
        """Stop the service and release its resources; a no-op if already STOPPED."""

    @abstractmethod
    def restart(self) -> None:
        """Stop and start again as one atomic operation."""

    @abstractmethod
    def toggle(self) -> None:
        """Start when STOPPED, stop when ACTIVE or ERROR."""

    @abstractmethod
    def destroy(self) -> None:
        """Drop all status observers and stop, or raise UnsupportedOperationError."""

    @abstractmethod
    def register_status_observer(self, observer: StatusObserver) -> None:
        """Register an observer of status transitions."""

    @abstractmethod
    def unregister_status_observer(self, observer: StatusObserver) -> None:
        """Unregister an observer of status transitions."""

    @abstractmethod
    def register_settings_observer(self, observer: SettingsObserver) -> None:
        """Register an observer of setting changes."""

    @abstractmethod
    def unregister_settings_observer(self, observer: SettingsObserver) -> None:
        """Unregister an observer of setting changes."""


class AbstractService(Service):
    """
    Base implementation of the Service contract.

    Subclasses implement the two hooks:

    - `_start_service()`: acquire resources. Raising makes the service enter ERROR.
    - `_stop_service()`: release resources. Must tolerate partially acquired state.

    start() and stop() wrap the hooks with the idempotency and status rules,
    so subclasses never set ACTIVE or STOPPED themselves. Background failures
    are reported through `_error()`.

    Example:
        ```python
        class Heartbeat(AbstractService):
            def _start_service(self) -> None:
                self._timer = threading.Timer(1.0, self._beat)
                self._timer.start()

            def _stop_service(self) -> None:
                if self._timer:
                    self._timer.cancel()
        ```
    """

    #: Set to False in subclasses whose instances must never be destroyed.
    supports_destroy = True

    def __init__(self, name: str = "No Name"):
        """
        Initialize the service in STOPPED state.

        Args:
            name: Human-readable name used in logs and settings events

        Raises:
            InvalidArgumentError: If the name is blank
        """
        if name is None or not name.strip():
            raise InvalidArgumentError("name", name, "must be a non-blank string")
        self._name = name
        self._lock = threading.RLock()
        self._status = ServiceStatus.STOPPED
        self._lock_depth = 0
        self._pending_status: list[tuple[ServiceStatus, ServiceStatus]] = []
        self._status_observers = ObserverManager[StatusObserver](observer_type_name="status")
        self._settings_observers = ObserverManager[SettingsObserver](observer_type_name="settings")

    # =================================================================
    # Status
    # =================================================================

    @property
    def status(self) -> ServiceStatus:
        return self._status

    def _swap_status(self, new_status: ServiceStatus) -> Optional[ServiceStatus]:
        """Write the status under the lock; return the old status, or None for a no-op."""
        if not isinstance(new_status, ServiceStatus):
            raise InvalidArgumentError("new_status", new_status, "must be a ServiceStatus")
        with self._lock:
            old_status = self._status
            if new_status is old_status:
                logger.debug(f"Service {self} requested no-op status change to {new_status.name}; ignored")
                return None
            self._status = new_status
            logger.debug(f"Service {self}: {old_status.name} -> {new_status.name}")
            return old_status

    @contextmanager
    def _transition(self) -> Iterator[None]:
        """
        Hold the service lock for a lifecycle change.

        Status changes made inside are queued and delivered to observers once
        the outermost `_transition()` on this service has released the lock.
        Transitions nest, so start() may call stop() and restart() may call both.
        """
        pending: list[tuple[ServiceStatus, ServiceStatus]] = []
        try:
            with self._lock:
                self._lock_depth += 1
                try:
                    yield
                finally:
                    self._lock_depth -= 1
                    if self._lock_depth == 0:
                        pending, self._pending_status = self._pending_status, []
        finally:
            for old_status, new_status in pending:
                self._status_observers.notify("on_status_change", self, old_status, new_status)

    def _set_status(self, new_status: ServiceStatus) -> None:
        """
        Change the status and notify status observers.

        A transition to the current status is suppressed and not delivered.
        """
        with self._transition():
            old_status = self._swap_status(new_status)
            if old_status is not None:
                self._pending_status.append((old_status, new_status))

    def _error(self) -> None:
        """Force ERROR from any other status; a no-op if already in ERROR."""
        self._error_if(lambda: True)

    def _error_if(self, condition: Callable[[], bool]) -> None:
        """
        Enter ERROR if `condition()` holds under the service lock.

        Like every status change, the notification is delivered after the
        lock is released, so a background thread reporting a failure never
        holds this service's lock while a parent's observer waits for the
        parent's own lock.
        """
        with self._transition():
            if self._status is ServiceStatus.ERROR or not condition():
                return
            logger.warning(f"Service {self} enters ERROR state!")
            self._set_status(ServiceStatus.ERROR)

    def _worker_error(self, stop_event: threading.Event) -> None:
        """
        Enter ERROR on behalf of a background worker.

        Nothing happens if the worker's stop token is set: the failure is
        then the expected result of stop() closing the worker's resource.
        The token is checked under the service lock because stop() sets it
        while holding that lock.
        """
        self._error_if(lambda: not stop_event.is_set())

    # =================================================================
    # Lifecycle
    # =================================================================

    @abstractmethod
    def _start_service(self) -> None:
        """Acquire resources (sockets, threads, child services)."""

    @abstractmethod
    def _stop_service(self) -> None:
        """Release all resources; must tolerate a partial start."""

    def start(self) -> None:
        with self._transition():
            if self._status is ServiceStatus.ACTIVE:
                return
            if self._status is ServiceStatus.ERROR:
                self.stop()
            logger.info(f"Starting {type(self).__name__} {self}")
            try:
                self._start_service()
            except Exception as e:
                logger.warning(f"{type(self).__name__} {self} failed to start: {e}", exc_info=True)
                self._error()
                return
            if self._status is ServiceStatus.STOPPED:
                self._set_status(ServiceStatus.ACTIVE)

    def stop(self) -> None:
        with self._transition():
            if self._status is ServiceStatus.STOPPED:
                return
            logger.info(f"Stopping {type(self).__name__} {self}")
            try:
                self._stop_service()
            finally:
                self._set_status(ServiceStatus.STOPPED)

    def restart(self) -> None:
        with self._transition():
            self.stop()
            self.start()

    def toggle(self) -> None:
        with self._transition():
            if self._status is ServiceStatus.STOPPED:
                self.start()
            else:
                self.stop()

    def destroy(self) -> None:
        if not self.supports_destroy:
            raise UnsupportedOperationError("destroy", self)
        with self._transition():
            self.clear_status_observers()
            self.stop()

    def __enter__(self):
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.stop()

    # =================================================================
    # Observers
    # =================================================================

    def register_status_observer(self, observer: StatusObserver) -> None:
        self._status_observers.register(observer)

    def unregister_status_observer(self, observer: StatusObserver) -> None:
        self._status_observers.unregister(observer)

    def clear_status_observers(self) -> None:
        """Remove all status observers without notifying them."""
        self._status_observers.clear()

    def register_settings_observer(self, observer: SettingsObserver) -> None:
        self._settings_observers.register(observer)

    def unregister_settings_observer(self, observer: SettingsObserver) -> None:
        self._settings_observers.unregister(observer)

    def _fire_setting_changed(self, setting: str, old_value: Any, new_value: Any) -> None:
        self._settings_observers.notify("on_setting_changed", self, setting, old_value, new_value)

    # =================================================================
    # Settings
    # =================================================================

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, name: str) -> None:
        if name is None or not name.strip():
            raise InvalidArgumentError("name", name, "must be a non-blank string")
        with self._lock:
            if name == self._name:
                return
            old_name = self._name
            self._name = name
        self._fire_setting_changed("name", old_name, name)

    def __str__(self) -> str:
        return self._name
