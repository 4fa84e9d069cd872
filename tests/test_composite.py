"""Tests for CompositeService: tasks, children and failure propagation."""

import threading
import time
from unittest.mock import Mock

import pytest

from netmidi.protocols import ServiceStatus, StatusObserver
from netmidi.service import CompositeService, NullService


class TestCompositeChildren:
    """Test child service handling."""

    @pytest.mark.unit
    def test_start_and_stop_children(self, null_service):
        composite = CompositeService(services=[null_service], name="parent")

        composite.start()
        assert composite.status is ServiceStatus.ACTIVE
        assert null_service.status is ServiceStatus.ACTIVE

        composite.stop()
        assert composite.status is ServiceStatus.STOPPED
        assert null_service.status is ServiceStatus.STOPPED

    @pytest.mark.unit
    def test_child_error_puts_composite_in_error(self, null_service):
        composite = CompositeService(services=[null_service], name="parent")
        observer = Mock(spec=StatusObserver)
        composite.start()
        composite.register_status_observer(observer)

        null_service.fail()

        assert composite.status is ServiceStatus.ERROR
        observer.on_status_change.assert_called_once_with(composite, ServiceStatus.ACTIVE, ServiceStatus.ERROR)

    @pytest.mark.unit
    def test_child_stopped_puts_composite_in_error(self, null_service):
        composite = CompositeService(services=[null_service], name="parent")
        composite.start()

        null_service.stop()

        assert composite.status is ServiceStatus.ERROR

    @pytest.mark.unit
    def test_no_automatic_recovery(self, null_service):
        """Restarting the child alone does not bring the composite back to ACTIVE."""
        composite = CompositeService(services=[null_service], name="parent")
        composite.start()
        null_service.fail()

        null_service.start()

        assert composite.status is ServiceStatus.ERROR

        composite.restart()
        assert composite.status is ServiceStatus.ACTIVE
        assert null_service.status is ServiceStatus.ACTIVE

    @pytest.mark.unit
    def test_stop_does_not_report_error(self, null_service):
        """Children stopped by the composite's own stop() are not regressions."""
        composite = CompositeService(services=[null_service], name="parent")
        observer = Mock(spec=StatusObserver)
        composite.register_status_observer(observer)
        composite.start()
        observer.reset_mock()

        composite.stop()

        observer.on_status_change.assert_called_once_with(composite, ServiceStatus.ACTIVE, ServiceStatus.STOPPED)

    @pytest.mark.unit
    def test_add_service_while_running_starts_it(self):
        composite = CompositeService(name="parent")
        composite.start()
        late = NullService("late")

        composite.add_service(late)

        assert late.status is ServiceStatus.ACTIVE
        assert composite.services == (late,)
        composite.stop()
        assert late.status is ServiceStatus.STOPPED

    @pytest.mark.unit
    def test_add_service_while_stopped_does_not_start_it(self):
        composite = CompositeService(name="parent")
        child = NullService("child")

        composite.add_service(child)

        assert child.status is ServiceStatus.STOPPED

    @pytest.mark.unit
    def test_error_in_one_of_many_children(self):
        first = NullService("first")
        second = NullService("second")
        composite = CompositeService(services=[first, second], name="parent")
        composite.start()

        second.fail()

        assert composite.status is ServiceStatus.ERROR
        assert first.status is ServiceStatus.ACTIVE

    @pytest.mark.unit
    def test_concurrent_child_failures_enter_error_once(self):
        children = [NullService(f"child-{i}") for i in range(8)]
        composite = CompositeService(services=children, name="parent")
        composite.start()
        observer = Mock(spec=StatusObserver)
        composite.register_status_observer(observer)
        barrier = threading.Barrier(len(children))

        def fail(child: NullService) -> None:
            barrier.wait()
            child.fail()

        threads = [threading.Thread(target=fail, args=(child,), daemon=True) for child in children]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5.0)

        assert not any(thread.is_alive() for thread in threads)
        assert composite.status is ServiceStatus.ERROR
        observer.on_status_change.assert_called_once_with(composite, ServiceStatus.ACTIVE, ServiceStatus.ERROR)

    @pytest.mark.unit
    def test_child_stop_races_parent_stop(self, null_service):
        """A child stopping itself while the parent stops it must not deadlock."""
        composite = CompositeService(services=[null_service], name="parent")
        notifying = threading.Event()

        def slow_observer(*args):
            notifying.set()
            time.sleep(0.3)

        observer = Mock(spec=StatusObserver)
        observer.on_status_change.side_effect = slow_observer
        null_service.register_status_observer(observer)
        composite.start()
        notifying.clear()

        child_stop = threading.Thread(target=null_service.stop, daemon=True)
        child_stop.start()
        assert notifying.wait(timeout=2.0)
        parent_stop = threading.Thread(target=composite.stop, daemon=True)
        parent_stop.start()
        child_stop.join(timeout=5.0)
        parent_stop.join(timeout=5.0)

        assert not child_stop.is_alive()
        assert not parent_stop.is_alive()
        assert null_service.status is ServiceStatus.STOPPED
        assert composite.status is ServiceStatus.STOPPED

    @pytest.mark.unit
    def test_stale_child_notification_is_ignored(self, null_service):
        """A regression delivered after the child is ACTIVE again leaves the parent ACTIVE."""
        composite = CompositeService(services=[null_service], name="parent")
        composite.start()

        composite._on_child_regression(null_service, ServiceStatus.STOPPED)

        assert composite.status is ServiceStatus.ACTIVE
        composite.stop()


class TestCompositeTasks:
    """Test background task handling."""

    @pytest.mark.unit
    def test_task_runs_until_stopped(self, wait_until):
        started = threading.Event()
        finished = threading.Event()

        def task(stop: threading.Event) -> None:
            started.set()
            stop.wait()
            finished.set()

        composite = CompositeService(tasks=[task], name="worker")
        composite.start()
        assert started.wait(timeout=2.0)

        composite.stop()

        assert finished.is_set()

    @pytest.mark.unit
    def test_failing_task_puts_composite_in_error(self, wait_until):
        def task(stop: threading.Event) -> None:
            raise RuntimeError("worker crashed")

        composite = CompositeService(tasks=[task], name="worker")
        composite.start()

        assert wait_until(lambda: composite.status is ServiceStatus.ERROR)
        composite.stop()
        assert composite.status is ServiceStatus.STOPPED

    @pytest.mark.unit
    def test_add_task_while_running_launches_it(self):
        composite = CompositeService(name="worker")
        composite.start()
        ran = threading.Event()

        def task(stop: threading.Event) -> None:
            ran.set()
            stop.wait()

        composite.add_task(task)

        assert ran.wait(timeout=2.0)
        composite.stop()

    @pytest.mark.unit
    def test_tasks_restart_with_fresh_stop_tokens(self):
        tokens = []
        launched = threading.Semaphore(0)

        def task(stop: threading.Event) -> None:
            tokens.append(stop)
            launched.release()
            stop.wait()

        composite = CompositeService(tasks=[task], name="worker")
        composite.start()
        assert launched.acquire(timeout=2.0)
        composite.restart()
        assert launched.acquire(timeout=2.0)
        composite.stop()

        assert len(tokens) == 2
        assert tokens[0] is not tokens[1]
        assert all(token.is_set() for token in tokens)
