"""Composition of background tasks and child services into one service."""

import logging
import threading
from collections.abc import Callable, Iterable
from typing import Optional

from netmidi.protocols import ServiceStatus

from .base import AbstractService, Service

logger = logging.getLogger(__name__)

# A background task receives its stop token and must return soon after it is set.
Task = Callable[[threading.Event], None]


class _ChildStatusObserver:
    """Maps child regressions (to STOPPED or ERROR) onto the owning composite."""

    def __init__(self, owner: "CompositeService"):
        self._owner = owner

    def on_status_change(self, service: Service, old_status: ServiceStatus, new_status: ServiceStatus) -> None:
        if new_status is not ServiceStatus.ACTIVE:
            self._owner._on_child_regression(service, new_status)

    def __repr__(self) -> str:
        return f"<child observer of {self._owner}>"


class CompositeService(AbstractService):
    """
    A service built from background tasks and child services.

    start() launches one daemon thread per task and starts every child.
    Any child falling back to STOPPED or ERROR while the composite runs
    puts the composite into ERROR. There is no automatic recovery;
    the owner must stop()/start() (or restart()) to retry.

    stop() signals every task's stop token, detaches from and stops every
    child, then joins the task threads.

    Tasks and children may be added at any time. Members added while the
    composite is running (ACTIVE or ERROR) are started immediately.

    Example:
        ```python
        def heartbeat(stop: threading.Event) -> None:
            while not stop.wait(1.0):
                print("beat")

        composite = CompositeService(tasks=[heartbeat], services=[transport])
        composite.start()
        ```
    """

    JOIN_TIMEOUT = 1.0

    def __init__(
        self,
        tasks: Optional[Iterable[Task]] = None,
        services: Optional[Iterable[Service]] = None,
        name: str = "CompositeService",
    ):
        super().__init__(name)
        self._tasks: list[Task] = list(tasks or [])
        self._services: list[Service] = list(services or [])
        self._workers: list[tuple[threading.Thread, threading.Event]] = []
        self._child_observer = _ChildStatusObserver(self)
        self._running = False

    @property
    def services(self) -> tuple[Service, ...]:
        """Child services in registration order."""
        return tuple(self._services)

    def add_task(self, task: Task) -> None:
        """Add a background task, launching it at once if the composite is running."""
        with self._transition():
            self._tasks.append(task)
            if self._running:
                self._launch(task)

    def add_service(self, service: Service) -> None:
        """Add a child service, starting it at once if the composite is running."""
        with self._transition():
            self._services.append(service)
            if self._running:
                service.register_status_observer(self._child_observer)
                service.start()

    def _launch(self, task: Task) -> None:
        stop_event = threading.Event()
        thread = threading.Thread(
            target=self._run_task,
            args=(task, stop_event),
            name=f"{self.name}-{getattr(task, '__name__', 'task')}",
            daemon=True,
        )
        self._workers.append((thread, stop_event))
        thread.start()

    def _run_task(self, task: Task, stop_event: threading.Event) -> None:
        try:
            task(stop_event)
        except Exception as e:
            logger.error(f"Task of {self} failed: {e}", exc_info=True)
            self._worker_error(stop_event)

    def _on_child_regression(self, service: Service, new_status: ServiceStatus) -> None:
        if self._running:
            logger.warning(f"Child service {service} of {self} went {new_status.name}")
        # Delivered after the child's lock is released; the child may be ACTIVE again by now.
        self._error_if(lambda: self._running and service.status is not ServiceStatus.ACTIVE)

    def _start_service(self) -> None:
        self._running = True
        for task in self._tasks:
            self._launch(task)
        for service in self._services:
            service.register_status_observer(self._child_observer)
            service.start()

    def _stop_service(self) -> None:
        self._running = False
        workers = list(self._workers)
        self._workers.clear()
        for _, stop_event in workers:
            stop_event.set()
        for service in self._services:
            service.unregister_status_observer(self._child_observer)
            service.stop()
        current = threading.current_thread()
        for thread, _ in workers:
            if thread is not current and thread.is_alive():
                thread.join(timeout=self.JOIN_TIMEOUT)
