"""Raw MIDI services: move complete MIDI byte messages without interpreting them."""

import logging
from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from netmidi.activity import NEVER
from netmidi.exceptions import InvalidArgumentError
from netmidi.models.config import DEFAULT_GROUP, DEFAULT_PORT
from netmidi.net import UdpMulticastService
from netmidi.protocols import RawMidiObserver, ServiceStatus, TransferDirection
from netmidi.service import AbstractService, Service
from netmidi.utils import ObserverManager

if TYPE_CHECKING:
    from netmidi.models import NetMidiConfig

logger = logging.getLogger(__name__)


class RawMidiService(AbstractService):
    """
    Base class for services that send and receive raw MIDI messages.

    Observers receive every message with its direction: TX after a message
    went out, RX when one came in. A raw MIDI service is also activity
    monitorable, tracking at least "Tx" and "Rx".
    """

    ACTIVITY_TX = "Tx"
    ACTIVITY_RX = "Rx"

    def __init__(self, name: str = "No Name"):
        super().__init__(name)
        self._raw_midi_observers = ObserverManager[RawMidiObserver](observer_type_name="raw MIDI")

    def register_raw_midi_observer(self, observer: RawMidiObserver) -> None:
        self._raw_midi_observers.register(observer)

    def unregister_raw_midi_observer(self, observer: RawMidiObserver) -> None:
        self._raw_midi_observers.unregister(observer)

    def _fire_raw_midi(self, direction: TransferDirection, data: bytes) -> None:
        self._raw_midi_observers.notify("on_raw_midi", direction, data)

    @abstractmethod
    def send_raw_message(self, data: bytes) -> bool:
        """
        Send one complete raw MIDI message.

        Returns:
            True if the message was accepted for sending
        """

    @property
    @abstractmethod
    def monitorable_activities(self) -> frozenset[str]:
        """Names accepted by last_activity()."""

    @abstractmethod
    def last_activity(self, activity: Optional[str] = None) -> datetime:
        """Time of the last occurrence of an activity (None = any)."""


class _TransportListener:
    """Relays transport status, messages and settings to a UdpRawMidiService."""

    def __init__(self, owner: "UdpRawMidiService"):
        self._owner = owner

    def on_status_change(self, service: Service, old_status: ServiceStatus, new_status: ServiceStatus) -> None:
        # Mirror the current status rather than new_status: a late ERROR
        # notification must not override a stop that already happened.
        self._owner._mirror_status(service.status)

    def on_message_sent(self, payload: bytes) -> None:
        self._owner._fire_raw_midi(TransferDirection.TX, payload)

    def on_message_received(self, payload: bytes) -> None:
        self._owner._fire_raw_midi(TransferDirection.RX, payload)

    def on_setting_changed(self, service: Service, name: str, old_value: Any, new_value: Any) -> None:
        if name in ("group", "port"):
            self._owner._fire_setting_changed(name, old_value, new_value)

    def __repr__(self) -> str:
        return f"<transport listener of {self._owner}>"


class UdpRawMidiService(RawMidiService):
    """
    Raw MIDI over UDP multicast: one MIDI message per datagram.

    The service owns a UdpMulticastService and mirrors its status, so a
    transport failure shows up as ERROR here too.

    Example:
        ```python
        raw = UdpRawMidiService()          # 225.0.0.37:21928
        raw.register_raw_midi_observer(dumper)
        with raw:
            raw.send_raw_message(b"\\xc0\\x05")
        ```
    """

    DEFAULT_GROUP = DEFAULT_GROUP
    DEFAULT_PORT = DEFAULT_PORT

    def __init__(
        self,
        group: str = DEFAULT_GROUP,
        port: int = DEFAULT_PORT,
        *,
        name: Optional[str] = None,
        **transport_options: Any,
    ):
        """
        Initialize the service.

        Args:
            group: Multicast group
            port: UDP port
            name: Service name (defaults to one derived from group and port)
            **transport_options: Passed to UdpMulticastService (interface,
                queue sizes, overflow_policy, ...)
        """
        transport = UdpMulticastService(group, port, **transport_options)
        super().__init__(name or f"Raw MIDI {transport.group}:{transport.port}")
        self._transport = transport
        self._listener = _TransportListener(self)
        transport.register_status_observer(self._listener)
        transport.register_message_observer(self._listener)
        transport.register_settings_observer(self._listener)

    @classmethod
    def from_config(cls, config: "NetMidiConfig", name: Optional[str] = None) -> "UdpRawMidiService":
        """Create a service from a NetMidiConfig."""
        return cls(config.group, config.port, name=name, **config.transport_options())

    @property
    def transport(self) -> UdpMulticastService:
        return self._transport

    @property
    def group(self) -> str:
        return self._transport.group

    @group.setter
    def group(self, group: str) -> None:
        with self._transition():
            self._transport.group = group

    @property
    def port(self) -> int:
        return self._transport.port

    @port.setter
    def port(self, port: int) -> None:
        with self._transition():
            self._transport.port = port

    def _mirror_status(self, status: ServiceStatus) -> None:
        if status is ServiceStatus.ERROR:
            self._error()
        else:
            self._set_status(status)

    def _start_service(self) -> None:
        self._transport.start()

    def _stop_service(self) -> None:
        self._transport.stop()

    def send_raw_message(self, data: bytes) -> bool:
        if data is None:
            raise InvalidArgumentError("data", None, "must not be None")
        return self._transport.transmit(data)

    @property
    def monitorable_activities(self) -> frozenset[str]:
        return self._transport.monitorable_activities

    def last_activity(self, activity: Optional[str] = None) -> datetime:
        return self._transport.last_activity(activity)


class NullRawMidiService(RawMidiService):
    """A raw MIDI service without I/O: sends are dropped, activities never happen."""

    def __init__(self, name: str = "No Raw MIDI"):
        super().__init__(name)

    def _start_service(self) -> None:
        pass

    def _stop_service(self) -> None:
        pass

    def send_raw_message(self, data: bytes) -> bool:
        if data is None:
            raise InvalidArgumentError("data", None, "must not be None")
        logger.debug(f"{self} drops {len(data)} bytes")
        return False

    @property
    def monitorable_activities(self) -> frozenset[str]:
        return frozenset((self.ACTIVITY_TX, self.ACTIVITY_RX))

    def last_activity(self, activity: Optional[str] = None) -> datetime:
        return NEVER
