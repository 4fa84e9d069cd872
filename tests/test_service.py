"""Tests for the service lifecycle."""

import threading
import unittest
from unittest.mock import Mock, call

from netmidi.exceptions import InvalidArgumentError, UnsupportedOperationError
from netmidi.protocols import ServiceStatus, SettingsObserver, StatusObserver
from netmidi.service import AbstractService, NullService


class CountingService(AbstractService):
    """Counts hook invocations; can be told to fail on start."""

    def __init__(self, name: str = "counting", fail_on_start: bool = False):
        super().__init__(name)
        self.fail_on_start = fail_on_start
        self.starts = 0
        self.stops = 0

    def _start_service(self) -> None:
        self.starts += 1
        if self.fail_on_start:
            raise OSError("address in use")

    def _stop_service(self) -> None:
        self.stops += 1


class PermanentService(NullService):
    supports_destroy = False


class TestServiceLifecycle(unittest.TestCase):
    """Test start/stop/restart/toggle semantics."""

    def test_initial_status(self):
        service = CountingService()
        assert service.status is ServiceStatus.STOPPED

    def test_start_and_stop(self):
        service = CountingService()
        observer = Mock(spec=StatusObserver)
        service.register_status_observer(observer)

        service.start()
        service.stop()

        assert service.status is ServiceStatus.STOPPED
        observer.on_status_change.assert_has_calls(
            [
                call(service, ServiceStatus.STOPPED, ServiceStatus.ACTIVE),
                call(service, ServiceStatus.ACTIVE, ServiceStatus.STOPPED),
            ]
        )

    def test_start_is_idempotent(self):
        """Starting an ACTIVE service does nothing and notifies nobody."""
        service = CountingService()
        observer = Mock(spec=StatusObserver)
        service.register_status_observer(observer)

        service.start()
        service.start()

        assert service.starts == 1
        assert observer.on_status_change.call_count == 1

    def test_stop_when_stopped_is_noop(self):
        service = CountingService()
        observer = Mock(spec=StatusObserver)
        service.register_status_observer(observer)

        service.stop()

        assert service.stops == 0
        observer.on_status_change.assert_not_called()

    def test_failed_start_enters_error(self):
        """An exception from the start hook is not raised; the service enters ERROR."""
        service = CountingService(fail_on_start=True)
        observer = Mock(spec=StatusObserver)
        service.register_status_observer(observer)

        service.start()

        assert service.status is ServiceStatus.ERROR
        observer.on_status_change.assert_called_once_with(service, ServiceStatus.STOPPED, ServiceStatus.ERROR)

    def test_start_from_error_stops_first(self):
        service = CountingService(fail_on_start=True)
        service.start()
        service.fail_on_start = False

        service.start()

        assert service.status is ServiceStatus.ACTIVE
        assert service.stops == 1
        assert service.starts == 2

    def test_stop_from_error(self):
        service = NullService()
        service.start()
        service.fail()

        service.stop()

        assert service.status is ServiceStatus.STOPPED

    def test_error_is_reported_once(self):
        service = NullService()
        observer = Mock(spec=StatusObserver)
        service.start()
        service.register_status_observer(observer)

        service.fail()
        service.fail()

        observer.on_status_change.assert_called_once_with(service, ServiceStatus.ACTIVE, ServiceStatus.ERROR)

    def test_restart(self):
        service = CountingService()
        service.start()

        service.restart()

        assert service.status is ServiceStatus.ACTIVE
        assert service.starts == 2
        assert service.stops == 1

    def test_restart_notifies_after_both_transitions(self):
        service = CountingService()
        service.start()
        observer = Mock(spec=StatusObserver)
        observer.on_status_change.side_effect = lambda *args: seen.append(service.status)
        seen = []
        service.register_status_observer(observer)

        service.restart()

        assert observer.on_status_change.call_args_list == [
            call(service, ServiceStatus.ACTIVE, ServiceStatus.STOPPED),
            call(service, ServiceStatus.STOPPED, ServiceStatus.ACTIVE),
        ]
        assert seen == [ServiceStatus.ACTIVE, ServiceStatus.ACTIVE]

    def test_observers_run_without_the_service_lock(self):
        """An observer may wait on another thread that drives the same service."""
        service = NullService()
        stopper = threading.Thread(target=service.stop, daemon=True)

        def stop_from_other_thread(*args):
            if not stopper.is_alive() and service.status is ServiceStatus.ACTIVE:
                stopper.start()
                stopper.join(timeout=2.0)

        observer = Mock(spec=StatusObserver)
        observer.on_status_change.side_effect = stop_from_other_thread
        service.register_status_observer(observer)

        service.start()

        assert not stopper.is_alive()
        assert service.status is ServiceStatus.STOPPED

    def test_restart_stopped_service_starts_it(self):
        service = CountingService()
        service.restart()
        assert service.status is ServiceStatus.ACTIVE
        assert service.stops == 0

    def test_toggle(self):
        service = NullService()

        service.toggle()
        assert service.status is ServiceStatus.ACTIVE
        service.toggle()
        assert service.status is ServiceStatus.STOPPED

        service.start()
        service.fail()
        service.toggle()
        assert service.status is ServiceStatus.STOPPED

    def test_context_manager(self):
        with NullService() as service:
            assert service.status is ServiceStatus.ACTIVE
        assert service.status is ServiceStatus.STOPPED

    def test_worker_error_ignored_while_stopping(self):
        """A worker whose stop token is set does not put the service into ERROR."""
        service = NullService()
        service.start()
        stop_event = threading.Event()
        stop_event.set()

        service._worker_error(stop_event)

        assert service.status is ServiceStatus.ACTIVE

    def test_worker_error_while_running(self):
        service = NullService()
        service.start()

        service._worker_error(threading.Event())

        assert service.status is ServiceStatus.ERROR

    def test_set_status_rejects_non_status(self):
        service = NullService()
        with self.assertRaises(InvalidArgumentError):
            service._set_status("active")


class TestServiceDestroy(unittest.TestCase):
    """Test destroy()."""

    def test_destroy_drops_observers_and_stops(self):
        service = NullService()
        observer = Mock(spec=StatusObserver)
        service.register_status_observer(observer)
        service.start()
        observer.reset_mock()

        service.destroy()

        assert service.status is ServiceStatus.STOPPED
        observer.on_status_change.assert_not_called()

    def test_destroy_unsupported(self):
        service = PermanentService()
        service.start()

        with self.assertRaises(UnsupportedOperationError):
            service.destroy()
        assert service.status is ServiceStatus.ACTIVE


class TestServiceSettings(unittest.TestCase):
    """Test the name setting and settings observers."""

    def test_blank_name_rejected(self):
        with self.assertRaises(InvalidArgumentError):
            NullService("   ")

    def test_rename_notifies(self):
        service = NullService("before")
        observer = Mock(spec=SettingsObserver)
        service.register_settings_observer(observer)

        service.name = "after"

        assert str(service) == "after"
        observer.on_setting_changed.assert_called_once_with(service, "name", "before", "after")

    def test_rename_to_same_name_is_silent(self):
        service = NullService("same")
        observer = Mock(spec=SettingsObserver)
        service.register_settings_observer(observer)

        service.name = "same"

        observer.on_setting_changed.assert_not_called()

    def test_rename_to_blank_rejected(self):
        service = NullService("kept")
        with self.assertRaises(InvalidArgumentError):
            service.name = ""
        assert service.name == "kept"


if __name__ == "__main__":
    unittest.main()
