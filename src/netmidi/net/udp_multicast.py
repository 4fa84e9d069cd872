"""UDP multicast transport service.

Moves opaque byte payloads between an IPv4 multicast group and the
process using three daemon threads per active session:

    socket --recv--> [receive thread] --rx queue--> [delivery thread] --> MessageObservers
    transmit() --tx queue--> [transmit thread] --sendto--> group:port --> MessageObservers

The delivery thread exists so that slow observers never stall socket
reception. Both queues are bounded and never block producers: when one is
full, the overflow policy decides which payload is dropped.

Each worker owns a threading.Event stop token. stop() sets the tokens
before closing the socket, so a worker can tell an expected shutdown
from a real I/O failure (which puts the service into ERROR).
"""

import logging
import queue
import socket
import struct
import threading
from collections.abc import Callable
from datetime import datetime
from typing import Optional

from netmidi.activity import ActivityRecord
from netmidi.exceptions import InvalidArgumentError
from netmidi.models.enums import OverflowPolicy
from netmidi.protocols import MessageObserver, ServiceStatus, TransferDirection
from netmidi.service import AbstractService
from netmidi.utils import ObserverManager, validate_group, validate_ipv4, validate_port

logger = logging.getLogger(__name__)


class UdpMulticastService(AbstractService):
    """
    Service that sends and receives datagrams on a multicast group.

    Queues and the socket are created on every start and discarded on
    stop, so nothing queued in one session leaks into the next.

    Example:
        ```python
        transport = UdpMulticastService("225.0.0.37", 21928)
        transport.register_message_observer(printer)
        with transport:
            transport.transmit(b"\\x90\\x3c\\x64")
        ```
    """

    ACTIVITY_TX = "Tx"
    ACTIVITY_RX = "Rx"
    JOIN_TIMEOUT = 1.0

    def __init__(
        self,
        group: str,
        port: int,
        *,
        interface: str = "0.0.0.0",
        rx_queue_size: int = 16,
        tx_queue_size: int = 16,
        receive_buffer_size: int = 2048,
        overflow_policy: OverflowPolicy = OverflowPolicy.DROP_NEWEST,
        poll_interval: float = 0.2,
        name: Optional[str] = None,
    ):
        """
        Initialize the transport (STOPPED, no socket yet).

        Args:
            group: IPv4 multicast group to join and send to
            port: UDP port to bind and send to (0 = pick a free port on start)
            interface: Local interface address for membership and sending
            rx_queue_size: Capacity of the receive queue
            tx_queue_size: Capacity of the transmit queue
            receive_buffer_size: Largest datagram read in one piece
            overflow_policy: Which payload a full queue drops
            poll_interval: Seconds between stop-token checks of blocked workers

        Raises:
            InvalidArgumentError: If any setting is out of range
        """
        self._group = validate_group(group)
        self._port = validate_port(port)
        self._interface = validate_ipv4(interface)
        for argument, value in (
            ("rx_queue_size", rx_queue_size),
            ("tx_queue_size", tx_queue_size),
            ("receive_buffer_size", receive_buffer_size),
        ):
            if value < 1:
                raise InvalidArgumentError(argument, value, "must be at least 1")
        if poll_interval <= 0:
            raise InvalidArgumentError("poll_interval", poll_interval, "must be positive")
        super().__init__(name or f"UDP {self._group}:{self._port}")

        self._rx_queue_size = rx_queue_size
        self._tx_queue_size = tx_queue_size
        self._receive_buffer_size = receive_buffer_size
        self._overflow_policy = OverflowPolicy(overflow_policy)
        self._poll_interval = poll_interval

        # Per-session resources (None while STOPPED)
        self._socket: Optional[socket.socket] = None
        self._rx_queue: Optional[queue.Queue[bytes]] = None
        self._tx_queue: Optional[queue.Queue[bytes]] = None
        self._workers: list[tuple[threading.Thread, threading.Event]] = []
        self._bound_port: Optional[int] = None

        self._message_observers = ObserverManager[MessageObserver](observer_type_name="message")
        self._activity = ActivityRecord((self.ACTIVITY_TX, self.ACTIVITY_RX))
        self._counter_lock = threading.Lock()
        self._rx_overflows = 0
        self._tx_overflows = 0

    # =================================================================
    # Settings
    # =================================================================

    @property
    def group(self) -> str:
        return self._group

    @group.setter
    def group(self, group: str) -> None:
        """Change the group; an ACTIVE transport restarts to rebind."""
        group = validate_group(group)
        with self._transition():
            old_group = self._group
            if group == old_group:
                return
            self._group = group
            if self._status is ServiceStatus.ACTIVE:
                self.restart()
        self._fire_setting_changed("group", old_group, group)

    @property
    def port(self) -> int:
        return self._port

    @port.setter
    def port(self, port: int) -> None:
        """Change the port; an ACTIVE transport restarts to rebind."""
        port = validate_port(port)
        with self._transition():
            old_port = self._port
            if port == old_port:
                return
            self._port = port
            if self._status is ServiceStatus.ACTIVE:
                self.restart()
        self._fire_setting_changed("port", old_port, port)

    @property
    def bound_port(self) -> Optional[int]:
        """Port the socket is actually bound to (None while STOPPED)."""
        return self._bound_port

    @property
    def interface(self) -> str:
        return self._interface

    @property
    def overflow_policy(self) -> OverflowPolicy:
        return self._overflow_policy

    @property
    def rx_queue_size(self) -> int:
        return self._rx_queue_size

    @property
    def tx_queue_size(self) -> int:
        return self._tx_queue_size

    @property
    def tx_queue_depth(self) -> int:
        """Number of payloads waiting to be sent (0 while STOPPED)."""
        tx_queue = self._tx_queue
        return tx_queue.qsize() if tx_queue is not None else 0

    @property
    def rx_overflows(self) -> int:
        """Payloads dropped because the receive queue was full."""
        return self._rx_overflows

    @property
    def tx_overflows(self) -> int:
        """Payloads dropped because the transmit queue was full."""
        return self._tx_overflows

    # =================================================================
    # Activity
    # =================================================================

    @property
    def monitorable_activities(self) -> frozenset[str]:
        return self._activity.activities

    def last_activity(self, activity: Optional[str] = None) -> datetime:
        """Time of the last "Tx" or "Rx" event, or of either when activity is None."""
        return self._activity.get(activity)

    # =================================================================
    # Observers
    # =================================================================

    def register_message_observer(self, observer: MessageObserver) -> None:
        self._message_observers.register(observer)

    def unregister_message_observer(self, observer: MessageObserver) -> None:
        self._message_observers.unregister(observer)

    # =================================================================
    # Sending
    # =================================================================

    def transmit(self, payload: bytes) -> bool:
        """
        Queue a payload for sending without blocking.

        Args:
            payload: Datagram payload

        Returns:
            True if the payload was queued; False if the transport is not
            ACTIVE or the payload was dropped on overflow

        Raises:
            InvalidArgumentError: If payload is None
        """
        if payload is None:
            raise InvalidArgumentError("payload", None, "must not be None")
        tx_queue = self._tx_queue
        if self._status is not ServiceStatus.ACTIVE or tx_queue is None:
            return False
        return self._offer(tx_queue, bytes(payload), TransferDirection.TX)

    def _offer(self, target: "queue.Queue[bytes]", payload: bytes, direction: TransferDirection) -> bool:
        """Enqueue without blocking, applying the overflow policy when full."""
        try:
            target.put_nowait(payload)
            return True
        except queue.Full:
            pass

        with self._counter_lock:
            if direction is TransferDirection.TX:
                self._tx_overflows += 1
            else:
                self._rx_overflows += 1

        if self._overflow_policy is OverflowPolicy.DROP_OLDEST:
            try:
                dropped = target.get_nowait()
            except queue.Empty:
                dropped = b""
            try:
                target.put_nowait(payload)
            except queue.Full:
                logger.warning(f"{direction.name} queue of {self} full, dropping {len(payload)} bytes")
                return False
            logger.warning(f"{direction.name} queue of {self} full, dropped oldest payload ({len(dropped)} bytes)")
            return True

        logger.warning(f"{direction.name} queue of {self} full, dropping {len(payload)} bytes")
        return False

    # =================================================================
    # Lifecycle
    # =================================================================

    def _open_socket(self) -> socket.socket:
        """Create the socket, bind it and join the group."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            if hasattr(socket, "SO_REUSEPORT"):
                try:
                    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
                except OSError as e:
                    logger.debug(f"SO_REUSEPORT not available: {e}")
            sock.bind(("", self._port))

            membership = struct.pack("=4s4s", socket.inet_aton(self._group), socket.inet_aton(self._interface))
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, membership)
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 1)
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF, socket.inet_aton(self._interface))
            sock.settimeout(self._poll_interval)
        except OSError:
            sock.close()
            raise
        return sock

    def _start_service(self) -> None:
        self._rx_queue = queue.Queue(maxsize=self._rx_queue_size)
        self._tx_queue = queue.Queue(maxsize=self._tx_queue_size)
        try:
            sock = self._open_socket()
            self._socket = sock
            self._bound_port = sock.getsockname()[1]
            destination = (self._group, self._bound_port)
            self._launch("rx", self._receive_loop, sock, self._rx_queue)
            self._launch("delivery", self._deliver_loop, self._rx_queue)
            self._launch("tx", self._transmit_loop, sock, self._tx_queue, destination)
        except Exception:
            self._stop_service()
            raise
        logger.info(f"{self} joined {self._group} on port {self._bound_port} via {self._interface}")

    def _stop_service(self) -> None:
        workers = self._workers
        self._workers = []
        for _, stop_event in workers:
            stop_event.set()

        sock = self._socket
        self._socket = None
        if sock is not None:
            try:
                sock.close()
            except OSError as e:
                logger.debug(f"Socket close of {self}: {e}")

        current = threading.current_thread()
        for thread, _ in workers:
            if thread is not current and thread.is_alive():
                thread.join(timeout=self.JOIN_TIMEOUT)
                if thread.is_alive():
                    logger.warning(f"Thread {thread.name} did not stop within {self.JOIN_TIMEOUT}s")

        self._rx_queue = None
        self._tx_queue = None
        self._bound_port = None

    def _launch(self, label: str, target: Callable[..., None], *args) -> None:
        stop_event = threading.Event()
        thread = threading.Thread(
            target=target,
            args=(*args, stop_event),
            name=f"{self.name}-{label}",
            daemon=True,
        )
        self._workers.append((thread, stop_event))
        thread.start()

    # =================================================================
    # Workers
    # =================================================================

    def _receive_loop(self, sock: socket.socket, rx_queue: "queue.Queue[bytes]", stop: threading.Event) -> None:
        logger.info(f"Starting receive thread of {self}")
        while not stop.is_set():
            try:
                payload = sock.recv(self._receive_buffer_size)
            except TimeoutError:
                continue
            except OSError as e:
                if not stop.is_set():
                    logger.warning(f"Receive on {self} failed: {e}")
                    self._worker_error(stop)
                break
            self._activity.touch(self.ACTIVITY_RX)
            self._offer(rx_queue, payload, TransferDirection.RX)
        logger.info(f"Terminating receive thread of {self}")

    def _deliver_loop(self, rx_queue: "queue.Queue[bytes]", stop: threading.Event) -> None:
        logger.info(f"Starting delivery thread of {self}")
        while not stop.is_set():
            try:
                payload = rx_queue.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
            self._message_observers.notify("on_message_received", payload)
        logger.info(f"Terminating delivery thread of {self}")

    def _transmit_loop(
        self,
        sock: socket.socket,
        tx_queue: "queue.Queue[bytes]",
        destination: tuple[str, int],
        stop: threading.Event,
    ) -> None:
        logger.info(f"Starting transmit thread of {self}")
        while not stop.is_set():
            try:
                payload = tx_queue.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
            try:
                sock.sendto(payload, destination)
            except OSError as e:
                if not stop.is_set():
                    logger.warning(f"Send on {self} failed: {e}")
                    self._worker_error(stop)
                break
            self._activity.touch(self.ACTIVITY_TX)
            self._message_observers.notify("on_message_sent", payload)
        logger.info(f"Terminating transmit thread of {self}")
