"""MIDI service: typed MIDI messages on top of a raw MIDI service."""

import logging
import threading
from collections.abc import Iterable
from datetime import datetime
from typing import Any, Optional

from netmidi.activity import NEVER, ActivityRecord
from netmidi.exceptions import InvalidArgumentError, UnsupportedOperationError
from netmidi.protocols import MidiObserver, RawMidiObserver, ServiceStatus, TransferDirection
from netmidi.service import CompositeService
from netmidi.utils import ObserverManager

from . import codec
from .messages import (
    ChannelPressure,
    ControlChange,
    InvalidMessage,
    MidiMessage,
    NoteOff,
    NoteOn,
    PitchBend,
    PolyKeyPressure,
    ProgramChange,
    SysEx,
)
from .raw_service import RawMidiService, UdpRawMidiService

logger = logging.getLogger(__name__)


class _RawListener:
    """Feeds raw messages received by the raw service into the MIDI service."""

    def __init__(self, owner: "MidiService"):
        self._owner = owner

    def on_raw_midi(self, direction: TransferDirection, data: bytes) -> None:
        if direction is TransferDirection.RX:
            self._owner._on_raw_rx(data)

    def __repr__(self) -> str:
        return f"<raw listener of {self._owner}>"


class MidiService(CompositeService):
    """
    Encodes outgoing and decodes incoming MIDI messages over a raw MIDI service.

    The raw service is the single child of this composite: starting the
    MIDI service starts it, and its failure puts the MIDI service in ERROR.

    Outgoing messages are sent only while the service is ACTIVE; otherwise
    the send methods do nothing and return False. Incoming messages that do
    not decode to a supported message are counted in `rx_errors` and
    recorded as "RxErr" activity; they never affect the service status.

    Example:
        ```python
        midi = MidiService(UdpRawMidiService())
        midi.register_midi_observer(printer)
        with midi:
            midi.send_program_change(channel=1, patch=5)
        ```
    """

    ACTIVITY_RX_ERROR = "RxErr"
    ACTIVITY_SYSEX = "SysEx"
    ACTIVITY_PROGRAM_CHANGE = "PC"
    ACTIVITY_CONTROL_CHANGE = "CC"

    def __init__(self, raw_service: RawMidiService, name: Optional[str] = None):
        """
        Initialize the service.

        Args:
            raw_service: Raw MIDI service to send through and receive from
            name: Service name (defaults to one derived from the raw service)
        """
        if raw_service is None:
            raise InvalidArgumentError("raw_service", None, "must not be None")
        super().__init__(services=[raw_service], name=name or f"MIDI [{raw_service}]")
        self._raw_service = raw_service
        self._midi_observers = ObserverManager[MidiObserver](observer_type_name="MIDI")
        self._activity = ActivityRecord(
            (
                self.ACTIVITY_RX_ERROR,
                self.ACTIVITY_SYSEX,
                self.ACTIVITY_PROGRAM_CHANGE,
                self.ACTIVITY_CONTROL_CHANGE,
            )
        )
        self._rx_errors = 0
        self._rx_errors_lock = threading.Lock()
        self._raw_listener = _RawListener(self)
        raw_service.register_raw_midi_observer(self._raw_listener)

    @property
    def raw_service(self) -> RawMidiService:
        return self._raw_service

    @property
    def rx_errors(self) -> int:
        """Number of received messages that failed to decode."""
        return self._rx_errors

    # =================================================================
    # Network settings
    # =================================================================

    def _udp_raw_service(self, setting: str) -> UdpRawMidiService:
        if not isinstance(self._raw_service, UdpRawMidiService):
            raise UnsupportedOperationError(setting, self)
        return self._raw_service

    @property
    def group(self) -> str:
        return self._udp_raw_service("group").group

    @group.setter
    def group(self, group: str) -> None:
        self._reconfigure("group", group)

    @property
    def port(self) -> int:
        return self._udp_raw_service("port").port

    @port.setter
    def port(self, port: int) -> None:
        self._reconfigure("port", port)

    def _reconfigure(self, setting: str, value: Any) -> None:
        """Change a raw service setting, cycling the service around it when ACTIVE."""
        raw_service = self._udp_raw_service(setting)
        with self._transition():
            old_value = getattr(raw_service, setting)
            was_active = self._status is ServiceStatus.ACTIVE
            if was_active:
                self.stop()
            try:
                setattr(raw_service, setting, value)
            finally:
                if was_active:
                    self.start()
            new_value = getattr(raw_service, setting)
        if new_value != old_value:
            self._fire_setting_changed(setting, old_value, new_value)

    # =================================================================
    # Observers
    # =================================================================

    def register_midi_observer(self, observer: MidiObserver) -> None:
        self._midi_observers.register(observer)

    def unregister_midi_observer(self, observer: MidiObserver) -> None:
        self._midi_observers.unregister(observer)

    def register_raw_midi_observer(self, observer: RawMidiObserver) -> None:
        self._raw_service.register_raw_midi_observer(observer)

    def unregister_raw_midi_observer(self, observer: RawMidiObserver) -> None:
        self._raw_service.unregister_raw_midi_observer(observer)

    def _fire_midi_message(self, direction: TransferDirection, message: MidiMessage) -> None:
        self._midi_observers.notify("on_midi_message", direction, message)

    # =================================================================
    # Activity
    # =================================================================

    @property
    def monitorable_activities(self) -> frozenset[str]:
        return self._raw_service.monitorable_activities | self._activity.activities

    def last_activity(self, activity: Optional[str] = None) -> datetime:
        """
        Time of the last occurrence of an activity.

        Args:
            activity: "RxErr", "SysEx", "PC", "CC", any raw service activity
                ("Tx", "Rx"), or None for the latest of all

        Returns:
            The timestamp, or NEVER for unknown or never-seen activities
        """
        if activity is None:
            return max(self._raw_service.last_activity(), self._activity.latest())
        if activity in self._activity.activities:
            return self._activity.get(activity)
        if activity in self._raw_service.monitorable_activities:
            return self._raw_service.last_activity(activity)
        return NEVER

    def _record_activity(self, message: MidiMessage) -> None:
        if isinstance(message, ProgramChange):
            self._activity.touch(self.ACTIVITY_PROGRAM_CHANGE)
        elif isinstance(message, ControlChange):
            self._activity.touch(self.ACTIVITY_CONTROL_CHANGE)
        elif isinstance(message, SysEx):
            self._activity.touch(self.ACTIVITY_SYSEX)

    # =================================================================
    # Sending
    # =================================================================

    def send_message(self, message: MidiMessage) -> bool:
        """
        Encode and send a typed message.

        Returns:
            False if the service is not ACTIVE or the raw service did not
            accept the message

        Raises:
            InvalidArgumentError: If a field is out of range
        """
        if self._status is not ServiceStatus.ACTIVE:
            return False
        return self._send(message, codec.encode(message))

    def _send(self, message: MidiMessage, data: bytes) -> bool:
        sent = self._raw_service.send_raw_message(data)
        self._record_activity(message)
        self._fire_midi_message(TransferDirection.TX, message)
        return sent

    def send_note_off(self, channel: int, note: int, velocity: int = 0) -> bool:
        return self.send_message(NoteOff(channel=channel, note=note, velocity=velocity))

    def send_note_on(self, channel: int, note: int, velocity: int) -> bool:
        return self.send_message(NoteOn(channel=channel, note=note, velocity=velocity))

    def send_poly_key_pressure(self, channel: int, note: int, pressure: int) -> bool:
        return self.send_message(PolyKeyPressure(channel=channel, note=note, pressure=pressure))

    def send_control_change(self, channel: int, controller: int, value: int) -> bool:
        return self.send_message(ControlChange(channel=channel, controller=controller, value=value))

    def send_program_change(self, channel: int, patch: int) -> bool:
        return self.send_message(ProgramChange(channel=channel, patch=patch))

    def send_channel_pressure(self, channel: int, pressure: int) -> bool:
        return self.send_message(ChannelPressure(channel=channel, pressure=pressure))

    def send_pitch_bend(self, channel: int, value: int) -> bool:
        return self.send_message(PitchBend(channel=channel, value=value))

    def send_sysex(self, vendor_id: int, message: Iterable[int]) -> bool:
        """
        Send a complete System Exclusive message (0xF0 ... 0xF7).

        Raises:
            InvalidArgumentError: If the vendor ID or the framing is invalid
        """
        if self._status is not ServiceStatus.ACTIVE:
            return False
        data = codec.sysex(vendor_id, message)
        return self._send(SysEx(vendor_id=vendor_id, data=data), data)

    # =================================================================
    # Receiving
    # =================================================================

    def _count_rx_error(self) -> None:
        with self._rx_errors_lock:
            self._rx_errors += 1
        self._activity.touch(self.ACTIVITY_RX_ERROR)

    def _on_raw_rx(self, data: bytes) -> None:
        """Decode a received raw message and dispatch it (delivery thread)."""
        if not data:
            logger.warning(f"Received empty MIDI message from {self._raw_service}; ignored")
            self._count_rx_error()
            return
        try:
            message = codec.decode(data)
        except InvalidArgumentError as e:
            logger.warning(f"Received unsupported MIDI message (ignored): {bytes(data).hex(' ')}: {e}")
            self._count_rx_error()
            return
        if isinstance(message, InvalidMessage):
            logger.warning(f"Received invalid MIDI message (ignored): {message.data.hex(' ')}")
            self._count_rx_error()
            return
        self._record_activity(message)
        self._fire_midi_message(TransferDirection.RX, message)
