"""Observer protocol definitions.

- Status observers: React to service lifecycle transitions
- Settings observers: React to service setting changes (name, group, port)
- Message observers: React to UDP payloads sent or received
- Raw MIDI observers: React to raw MIDI byte messages
- MIDI observers: React to decoded MIDI messages
- Activity observers: React to activity liveness changes
"""

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .events import ServiceStatus, TransferDirection

if TYPE_CHECKING:
    from netmidi.midi.messages import MidiMessage
    from netmidi.service.base import Service


@runtime_checkable
class StatusObserver(Protocol):
    """Observer that receives service status transitions."""

    def on_status_change(
        self, service: "Service", old_status: ServiceStatus, new_status: ServiceStatus
    ) -> None:
        """
        Handle a status transition.

        Args:
            service: The service whose status changed
            old_status: Status before the transition
            new_status: Status after the transition (never equal to old_status)

        Threading:
            Called from whichever thread drove the transition, which may be a
            background I/O thread of the service.
        """
        ...


@runtime_checkable
class SettingsObserver(Protocol):
    """Observer that receives setting changes of a service."""

    def on_setting_changed(self, service: "Service", name: str, old_value: Any, new_value: Any) -> None:
        """
        Handle a setting change.

        Args:
            service: The service whose setting changed
            name: Setting name (e.g. "name", "group", "port")
            old_value: Previous value
            new_value: New value
        """
        ...


@runtime_checkable
class MessageObserver(Protocol):
    """Observer of UDP payloads moved by a transport."""

    def on_message_sent(self, payload: bytes) -> None:
        """Handle a payload after it was sent as a datagram (transmit thread)."""
        ...

    def on_message_received(self, payload: bytes) -> None:
        """Handle a received payload (delivery thread - keep it fast!)."""
        ...


@runtime_checkable
class RawMidiObserver(Protocol):
    """Observer of raw MIDI byte messages."""

    def on_raw_midi(self, direction: TransferDirection, data: bytes) -> None:
        """
        Handle a raw MIDI message.

        Args:
            direction: TX for messages sent, RX for messages received
            data: The complete wire message
        """
        ...


@runtime_checkable
class MidiObserver(Protocol):
    """Observer of decoded MIDI messages."""

    def on_midi_message(self, direction: TransferDirection, message: "MidiMessage") -> None:
        """
        Handle a decoded MIDI message.

        Args:
            direction: TX for messages sent, RX for messages received
            message: The typed message (NoteOn, ControlChange, SysEx, ...)

        Note:
            RX messages are delivered from the transport's delivery thread.
        """
        ...


@runtime_checkable
class ActivityObserver(Protocol):
    """Observer of activity liveness changes."""

    def on_activity_changed(self, activity: str, active: bool) -> None:
        """
        Handle a liveness change of a monitored activity.

        Args:
            activity: Activity name (e.g. "Rx", "Tx", "SysEx")
            active: True if the activity was seen within the timeout
        """
        ...
