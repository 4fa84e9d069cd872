"""Generic copy-on-write observer registry.

This module provides a reusable ObserverManager class that handles thread-safe
registration, unregistration, and notification of observers. Every service
in the package keeps its status, settings and protocol observers in one.
"""

import logging
from threading import Lock
from typing import Any, Generic, TypeVar

from netmidi.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=object)


class ObserverManager(Generic[T]):
    """
    Observer registry with insertion-ordered, duplicate-free membership.

    Mutations are serialized by a lock. After every mutation an immutable
    tuple snapshot of the members is published; notification reads that
    snapshot without taking the lock, so observers may register or
    unregister themselves (or others) from inside a callback.

    An observer unregistered before a notification starts never receives
    it. An observer unregistered while a notification is in progress may
    still receive that one notification.

    Type Parameters:
        T: The observer protocol type (e.g., StatusObserver, MidiObserver)

    Example:
        ```python
        class MyService:
            def __init__(self):
                self._observers = ObserverManager[MyObserver](observer_type_name="my")

            def register_observer(self, observer: MyObserver) -> None:
                self._observers.register(observer)

            def _notify_something_happened(self, data):
                self._observers.notify('on_something_happened', data)
        ```
    """

    def __init__(self, observer_type_name: str = "observer"):
        """
        Initialize the observer manager.

        Args:
            observer_type_name: Name of the observer type for logging (e.g., "status", "midi")
        """
        self._observers: list[T] = []
        self._snapshot: tuple[T, ...] = ()
        self._lock = Lock()
        self._observer_type_name = observer_type_name

    def register(self, observer: T) -> None:
        """
        Register an observer (idempotent - won't add duplicates).

        Args:
            observer: The observer to register

        Raises:
            InvalidArgumentError: If observer is None
        """
        if observer is None:
            raise InvalidArgumentError("observer", None, "must not be None")
        with self._lock:
            if observer not in self._observers:
                self._observers.append(observer)
                self._snapshot = tuple(self._observers)
                logger.debug(f"Registered {self._observer_type_name} observer: {observer}")
            else:
                logger.debug(f"{self._observer_type_name} observer already registered: {observer}")

    def unregister(self, observer: T) -> None:
        """
        Unregister an observer; unknown observers are silently ignored.

        Args:
            observer: The observer to unregister
        """
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)
                self._snapshot = tuple(self._observers)
                logger.debug(f"Unregistered {self._observer_type_name} observer: {observer}")

    def clear(self) -> None:
        """Remove all registered observers without notifying them."""
        with self._lock:
            count = len(self._observers)
            self._observers.clear()
            self._snapshot = ()
            if count > 0:
                logger.debug(f"Cleared {count} {self._observer_type_name} observer(s)")

    def snapshot(self) -> tuple[T, ...]:
        """Return the currently published immutable member tuple."""
        return self._snapshot

    def notify(self, callback_name: str, *args: Any, **kwargs: Any) -> None:
        """
        Notify all observers by calling their callback method.

        Args:
            callback_name: Name of the callback method to call (e.g., 'on_status_change')
            *args: Positional arguments to pass to the callback
            **kwargs: Keyword arguments to pass to the callback

        Error Handling:
            Exceptions in observer callbacks are logged but don't affect other observers.
        """
        for observer in self._snapshot:
            try:
                callback = getattr(observer, callback_name)
            except AttributeError:
                logger.error(
                    f"{self._observer_type_name} observer {observer} has no method '{callback_name}'"
                )
                continue
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"Error notifying {self._observer_type_name} observer {observer} via {callback_name}: {e}",
                    exc_info=True,
                )

    def __contains__(self, observer: T) -> bool:
        return observer in self._snapshot

    def __len__(self) -> int:
        return len(self._snapshot)

    def __bool__(self) -> bool:
        return len(self._snapshot) > 0
