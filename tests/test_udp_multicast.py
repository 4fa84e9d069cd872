"""Tests for the UDP multicast transport."""

import queue
import threading
from unittest.mock import Mock

import pytest

from netmidi.activity import NEVER
from netmidi.exceptions import InvalidArgumentError
from netmidi.models import OverflowPolicy
from netmidi.net import UdpMulticastService
from netmidi.protocols import MessageObserver, ServiceStatus, SettingsObserver

GROUP = "239.255.0.37"


class FakeSocket:
    """In-memory stand-in for a bound multicast socket."""

    def __init__(self, port: int = 5004):
        self.port = port
        self.incoming: "queue.Queue[bytes]" = queue.Queue()
        self.sent: list[tuple[bytes, tuple[str, int]]] = []
        self.closed = threading.Event()
        self.recv_error = None

    def getsockname(self):
        return ("0.0.0.0", self.port)

    def recv(self, size: int) -> bytes:
        if self.recv_error is not None:
            raise self.recv_error
        try:
            return self.incoming.get(timeout=0.01)[:size]
        except queue.Empty:
            if self.closed.is_set():
                raise OSError("socket closed") from None
            raise TimeoutError from None

    def sendto(self, payload: bytes, destination: tuple[str, int]) -> None:
        self.sent.append((payload, destination))

    def close(self) -> None:
        self.closed.set()


class FakeSocketTransport(UdpMulticastService):
    """Transport whose socket is a FakeSocket; worker threads are real."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.sockets: list[FakeSocket] = []
        self.recv_error = None

    def _open_socket(self):
        sock = FakeSocket()
        sock.recv_error = self.recv_error
        self.sockets.append(sock)
        return sock


class StalledTransport(FakeSocketTransport):
    """Transport whose transmit thread never drains the queue."""

    def _transmit_loop(self, sock, tx_queue, destination, stop):
        stop.wait()


class UnbindableTransport(UdpMulticastService):
    def _open_socket(self):
        raise OSError("Address already in use")


@pytest.fixture
def transport():
    service = FakeSocketTransport(GROUP, 5004, poll_interval=0.02)
    yield service
    service.stop()


class TestTransportConfiguration:
    """Test construction and settings."""

    @pytest.mark.unit
    def test_defaults(self):
        service = UdpMulticastService(GROUP, 5004)
        assert service.name == f"UDP {GROUP}:5004"
        assert service.status is ServiceStatus.STOPPED
        assert service.interface == "0.0.0.0"
        assert service.overflow_policy is OverflowPolicy.DROP_NEWEST
        assert service.bound_port is None
        assert service.tx_queue_depth == 0

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"group": "10.0.0.1"},
            {"group": "not-an-address"},
            {"port": 70000},
            {"port": -1},
            {"interface": "eth0"},
            {"rx_queue_size": 0},
            {"tx_queue_size": 0},
            {"receive_buffer_size": 0},
            {"poll_interval": 0},
        ],
    )
    def test_invalid_settings(self, kwargs):
        settings = {"group": GROUP, "port": 5004}
        settings.update(kwargs)
        group = settings.pop("group")
        port = settings.pop("port")
        with pytest.raises(InvalidArgumentError):
            UdpMulticastService(group, port, **settings)

    @pytest.mark.unit
    def test_overflow_policy_from_string(self):
        service = UdpMulticastService(GROUP, 5004, overflow_policy="drop_oldest")
        assert service.overflow_policy is OverflowPolicy.DROP_OLDEST

    @pytest.mark.unit
    def test_change_port_notifies(self):
        service = UdpMulticastService(GROUP, 5004)
        observer = Mock(spec=SettingsObserver)
        service.register_settings_observer(observer)

        service.port = 5005
        service.port = 5005

        observer.on_setting_changed.assert_called_once_with(service, "port", 5004, 5005)

    @pytest.mark.unit
    def test_invalid_group_change_keeps_old_group(self):
        service = UdpMulticastService(GROUP, 5004)
        with pytest.raises(InvalidArgumentError):
            service.group = "192.168.1.1"
        assert service.group == GROUP

    @pytest.mark.unit
    def test_change_group_while_active_rebinds(self, transport):
        transport.start()
        observer = Mock(spec=SettingsObserver)
        transport.register_settings_observer(observer)

        transport.group = "239.255.0.38"

        assert transport.status is ServiceStatus.ACTIVE
        assert len(transport.sockets) == 2
        assert transport.sockets[0].closed.is_set()
        observer.on_setting_changed.assert_called_once_with(transport, "group", GROUP, "239.255.0.38")


class TestTransportLifecycle:
    """Test start/stop and failure handling."""

    @pytest.mark.unit
    def test_start_binds(self, transport):
        transport.start()
        assert transport.status is ServiceStatus.ACTIVE
        assert transport.bound_port == 5004

    @pytest.mark.unit
    def test_stop_releases_resources(self, transport):
        transport.start()
        transport.stop()

        assert transport.status is ServiceStatus.STOPPED
        assert transport.sockets[0].closed.is_set()
        assert transport.bound_port is None
        assert transport.tx_queue_depth == 0

    @pytest.mark.unit
    def test_bind_failure_enters_error(self):
        service = UnbindableTransport(GROUP, 5004)

        service.start()

        assert service.status is ServiceStatus.ERROR
        assert service.bound_port is None
        assert service.transmit(b"\x90\x3c\x64") is False

    @pytest.mark.unit
    def test_receive_failure_enters_error(self, wait_until):
        service = FakeSocketTransport(GROUP, 5004, poll_interval=0.02)
        service.recv_error = OSError("Network is unreachable")

        service.start()

        assert wait_until(lambda: service.status is ServiceStatus.ERROR)
        service.stop()
        assert service.status is ServiceStatus.STOPPED

    @pytest.mark.unit
    def test_stop_is_not_a_failure(self, transport):
        """Closing the socket during stop() does not report ERROR."""
        transport.start()
        transport.stop()
        transport.start()
        assert transport.status is ServiceStatus.ACTIVE


class TestTransportMessages:
    """Test sending and receiving through the worker threads."""

    @pytest.mark.unit
    def test_transmit_when_stopped(self, transport):
        assert transport.transmit(b"\x90\x3c\x64") is False

    @pytest.mark.unit
    def test_transmit_none_raises(self, transport):
        with pytest.raises(InvalidArgumentError):
            transport.transmit(None)

    @pytest.mark.unit
    def test_transmit_sends_to_group(self, transport, wait_until):
        observer = Mock(spec=MessageObserver)
        transport.register_message_observer(observer)
        transport.start()

        assert transport.transmit(b"\x90\x3c\x64") is True

        assert wait_until(lambda: observer.on_message_sent.called)
        sock = transport.sockets[0]
        assert sock.sent == [(b"\x90\x3c\x64", (GROUP, 5004))]
        observer.on_message_sent.assert_called_once_with(b"\x90\x3c\x64")
        assert transport.last_activity("Tx") > NEVER
        assert transport.last_activity("Rx") == NEVER

    @pytest.mark.unit
    def test_receive_delivers_to_observers(self, transport, wait_until):
        observer = Mock(spec=MessageObserver)
        transport.register_message_observer(observer)
        transport.start()

        transport.sockets[0].incoming.put(b"\xc0\x05")

        assert wait_until(lambda: observer.on_message_received.called)
        observer.on_message_received.assert_called_once_with(b"\xc0\x05")
        assert transport.last_activity("Rx") > NEVER
        assert transport.last_activity() == transport.last_activity("Rx")

    @pytest.mark.unit
    def test_messages_in_order(self, transport, wait_until):
        received = []
        observer = Mock(spec=MessageObserver)
        observer.on_message_received.side_effect = received.append
        transport.register_message_observer(observer)
        transport.start()

        for i in range(5):
            transport.sockets[0].incoming.put(bytes([0xC0, i]))

        assert wait_until(lambda: len(received) == 5)
        assert received == [bytes([0xC0, i]) for i in range(5)]

    @pytest.mark.unit
    def test_activities(self, transport):
        assert transport.monitorable_activities == frozenset({"Tx", "Rx"})
        assert transport.last_activity("Bogus") == NEVER


class TestTransportOverflow:
    """Test the bounded queues."""

    @pytest.mark.unit
    def test_drop_newest(self):
        service = StalledTransport(GROUP, 5004, tx_queue_size=2, poll_interval=0.02)
        service.start()
        try:
            assert service.transmit(b"1") is True
            assert service.transmit(b"2") is True
            assert service.transmit(b"3") is False

            assert service.tx_overflows == 1
            assert service.tx_queue_depth == 2
            assert list(service._tx_queue.queue) == [b"1", b"2"]
        finally:
            service.stop()

    @pytest.mark.unit
    def test_drop_oldest(self):
        service = StalledTransport(
            GROUP, 5004, tx_queue_size=2, overflow_policy=OverflowPolicy.DROP_OLDEST, poll_interval=0.02
        )
        service.start()
        try:
            assert service.transmit(b"1") is True
            assert service.transmit(b"2") is True
            assert service.transmit(b"3") is True

            assert service.tx_overflows == 1
            assert list(service._tx_queue.queue) == [b"2", b"3"]
        finally:
            service.stop()

    @pytest.mark.unit
    def test_queue_discarded_on_stop(self):
        """Payloads queued in one session are not sent in the next."""
        service = StalledTransport(GROUP, 5004, tx_queue_size=2, poll_interval=0.02)
        service.start()
        service.transmit(b"1")
        service.stop()
        service.start()
        try:
            assert service.tx_queue_depth == 0
        finally:
            service.stop()


@pytest.mark.integration
class TestTransportLoopback:
    """Send and receive over a real socket on the loopback interface."""

    def test_loopback(self, wait_until):
        service = UdpMulticastService(GROUP, 0, interface="127.0.0.1", poll_interval=0.05)
        observer = Mock(spec=MessageObserver)
        service.register_message_observer(observer)
        service.start()
        try:
            if service.status is not ServiceStatus.ACTIVE:
                pytest.skip("multicast sockets unavailable")
            assert service.bound_port > 0

            assert service.transmit(b"\xb0\x07\x7f") is True
            assert wait_until(lambda: observer.on_message_sent.called)
            if not wait_until(lambda: observer.on_message_received.called):
                pytest.skip("multicast loopback unavailable")

            observer.on_message_received.assert_called_with(b"\xb0\x07\x7f")
            assert service.last_activity("Tx") > NEVER
            assert service.last_activity("Rx") > NEVER
        finally:
            service.stop()
