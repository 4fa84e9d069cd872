"""MIDI messages, wire codec and MIDI services.

- messages: Typed message models (NoteOn, ControlChange, SysEx, ...)
- codec: Encode/decode/dissect raw MIDI byte messages
- convert: Conversion to and from mido messages
- raw_service: Raw MIDI services (UDP multicast, null)
- service: MidiService, typed messages over a raw MIDI service
- bridge: Local mido ports <-> MidiService
"""

from . import codec
from .bridge import MidiPortBridge
from .convert import from_mido, to_mido
from .messages import (
    MIDI_MESSAGE_ADAPTER,
    ChannelPressure,
    ControlChange,
    InvalidMessage,
    MidiMessage,
    MidiMessageType,
    NoteOff,
    NoteOn,
    PitchBend,
    PolyKeyPressure,
    ProgramChange,
    SysEx,
)
from .raw_service import NullRawMidiService, RawMidiService, UdpRawMidiService
from .service import MidiService

__all__ = [
    "MIDI_MESSAGE_ADAPTER",
    "ChannelPressure",
    "ControlChange",
    "InvalidMessage",
    "MidiMessage",
    "MidiMessageType",
    "MidiPortBridge",
    "MidiService",
    "NoteOff",
    "NoteOn",
    "NullRawMidiService",
    "PitchBend",
    "PolyKeyPressure",
    "ProgramChange",
    "RawMidiService",
    "SysEx",
    "UdpRawMidiService",
    "codec",
    "from_mido",
    "to_mido",
]
