"""Conversion between netmidi message models and mido messages.

mido uses 0-based channels and strips the SysEx brackets; netmidi uses
1-based channels and keeps the complete SysEx message.
"""

from typing import Optional

import mido

from netmidi.exceptions import InvalidArgumentError

from .codec import SYSEX_END, SYSEX_START
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


def to_mido(message: MidiMessage) -> mido.Message:
    """
    Convert a netmidi message to a mido.Message.

    Raises:
        InvalidArgumentError: For InvalidMessage (nothing to convert)
        ValueError: If mido rejects a field value
    """
    if isinstance(message, NoteOff):
        return mido.Message("note_off", channel=message.channel - 1, note=message.note, velocity=message.velocity)
    if isinstance(message, NoteOn):
        return mido.Message("note_on", channel=message.channel - 1, note=message.note, velocity=message.velocity)
    if isinstance(message, PolyKeyPressure):
        return mido.Message("polytouch", channel=message.channel - 1, note=message.note, value=message.pressure)
    if isinstance(message, ControlChange):
        return mido.Message(
            "control_change", channel=message.channel - 1, control=message.controller, value=message.value
        )
    if isinstance(message, ProgramChange):
        return mido.Message("program_change", channel=message.channel - 1, program=message.patch)
    if isinstance(message, ChannelPressure):
        return mido.Message("aftertouch", channel=message.channel - 1, value=message.pressure)
    if isinstance(message, PitchBend):
        return mido.Message("pitchwheel", channel=message.channel - 1, pitch=message.value)
    if isinstance(message, SysEx):
        return mido.Message("sysex", data=message.data[1:-1])
    if isinstance(message, InvalidMessage):
        raise InvalidArgumentError("message", message, "an invalid message has no mido equivalent")
    raise InvalidArgumentError("message", message, "is not a MIDI message")


def from_mido(message: mido.Message) -> Optional[MidiMessage]:
    """
    Convert a mido.Message to a netmidi message.

    Returns:
        The netmidi message, or None for mido message types netmidi does not
        model (clock, start/stop, song position, ...)
    """
    kind = message.type
    if kind == "note_off":
        return NoteOff(channel=message.channel + 1, note=message.note, velocity=message.velocity)
    if kind == "note_on":
        return NoteOn(channel=message.channel + 1, note=message.note, velocity=message.velocity)
    if kind == "polytouch":
        return PolyKeyPressure(channel=message.channel + 1, note=message.note, pressure=message.value)
    if kind == "control_change":
        return ControlChange(channel=message.channel + 1, controller=message.control, value=message.value)
    if kind == "program_change":
        return ProgramChange(channel=message.channel + 1, patch=message.program)
    if kind == "aftertouch":
        return ChannelPressure(channel=message.channel + 1, pressure=message.value)
    if kind == "pitchwheel":
        return PitchBend(channel=message.channel + 1, value=message.pitch)
    if kind == "sysex":
        payload = bytes(message.data)
        return SysEx(vendor_id=payload[0] if payload else 0, data=bytes([SYSEX_START]) + payload + bytes([SYSEX_END]))
    return None
