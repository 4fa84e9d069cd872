"""MIDI wire codec.

Stateless functions between typed messages and raw MIDI byte messages.

Encoding validates every field first, so an out-of-range value raises
InvalidArgumentError and no bytes are produced. Channels are 1-16 in the
API and 0-15 on the wire.

Dissection classifies a raw message:

| Status byte | Message            | Length |
|-------------|--------------------|--------|
| 0x8n        | Note Off           | 3      |
| 0x9n        | Note On            | 3      |
| 0xAn        | Poly Key Pressure  | 3      |
| 0xBn        | Control Change     | 3      |
| 0xCn        | Program Change     | 2      |
| 0xDn        | Channel Pressure   | 2      |
| 0xEn        | Pitch Bend         | 3      |
| 0xF0        | SysEx (.. 0xF7)    | >= 3   |

A message whose first byte is not a status byte, whose length is wrong,
or whose data bytes have the high bit set is INVALID. Empty input and
the system common / real-time range 0xF1-0xFF are caller errors.
"""

from collections.abc import Iterable

from netmidi.exceptions import InvalidArgumentError

from .messages import (
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

SYSEX_START = 0xF0
SYSEX_END = 0xF7

PITCH_BEND_MIN = -8192
PITCH_BEND_MAX = 8191
PITCH_BEND_CENTER = 8192

# Status nibble -> (message type, total length)
_CHANNEL_MESSAGES: dict[int, tuple[MidiMessageType, int]] = {
    0x80: (MidiMessageType.NOTE_OFF, 3),
    0x90: (MidiMessageType.NOTE_ON, 3),
    0xA0: (MidiMessageType.POLYPHONIC_KEY_PRESSURE, 3),
    0xB0: (MidiMessageType.CONTROL_CHANGE, 3),
    0xC0: (MidiMessageType.PROGRAM_CHANGE, 2),
    0xD0: (MidiMessageType.CHANNEL_PRESSURE, 2),
    0xE0: (MidiMessageType.PITCH_BEND, 3),
}


def _check_channel(channel: int) -> int:
    if isinstance(channel, bool) or not isinstance(channel, int) or not 1 <= channel <= 16:
        raise InvalidArgumentError("channel", channel, "must be in [1, 16]")
    return channel - 1


def _check_data(argument: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 127:
        raise InvalidArgumentError(argument, value, "must be in [0, 127]")
    return value


# =================================================================
# Encoding
# =================================================================


def note_off(channel: int, note: int, velocity: int) -> bytes:
    return bytes([0x80 + _check_channel(channel), _check_data("note", note), _check_data("velocity", velocity)])


def note_on(channel: int, note: int, velocity: int) -> bytes:
    return bytes([0x90 + _check_channel(channel), _check_data("note", note), _check_data("velocity", velocity)])


def poly_key_pressure(channel: int, note: int, pressure: int) -> bytes:
    return bytes([0xA0 + _check_channel(channel), _check_data("note", note), _check_data("pressure", pressure)])


def control_change(channel: int, controller: int, value: int) -> bytes:
    return bytes([0xB0 + _check_channel(channel), _check_data("controller", controller), _check_data("value", value)])


def program_change(channel: int, patch: int) -> bytes:
    return bytes([0xC0 + _check_channel(channel), _check_data("patch", patch)])


def channel_pressure(channel: int, pressure: int) -> bytes:
    return bytes([0xD0 + _check_channel(channel), _check_data("pressure", pressure)])


def pitch_bend(channel: int, value: int) -> bytes:
    """
    Encode a pitch bend.

    Args:
        channel: MIDI channel (1-16)
        value: Signed bend in [-8192, 8191]; 0 is center

    Returns:
        Three bytes: status, 7-bit LSB, 7-bit MSB of value + 8192
    """
    status = 0xE0 + _check_channel(channel)
    if isinstance(value, bool) or not isinstance(value, int) or not PITCH_BEND_MIN <= value <= PITCH_BEND_MAX:
        raise InvalidArgumentError("value", value, f"must be in [{PITCH_BEND_MIN}, {PITCH_BEND_MAX}]")
    biased = value + PITCH_BEND_CENTER
    return bytes([status, biased & 0x7F, biased >> 7])


def sysex(vendor_id: int, message: Iterable[int]) -> bytes:
    """
    Validate and copy a complete System Exclusive message.

    Args:
        vendor_id: Manufacturer ID (0-127)
        message: The whole message, 0xF0 ... 0xF7. When it is longer than
            the bare brackets, its second byte must equal vendor_id.

    Returns:
        A copy of the message

    Raises:
        InvalidArgumentError: If the vendor ID or framing is invalid, or an
            interior byte has its high bit set
    """
    _check_data("vendor_id", vendor_id)
    if message is None:
        raise InvalidArgumentError("message", None, "must not be None")
    data = bytes(message)
    if len(data) < 2:
        raise InvalidArgumentError("message", data, "must hold at least the F0 and F7 brackets")
    if data[0] != SYSEX_START or data[-1] != SYSEX_END:
        raise InvalidArgumentError("message", data, "must start with F0 and end with F7")
    if len(data) >= 3 and data[1] != vendor_id:
        raise InvalidArgumentError("message", data, f"second byte must be the vendor ID {vendor_id:#04x}")
    if any(b & 0x80 for b in data[1:-1]):
        raise InvalidArgumentError("message", data, "interior bytes must be in [0, 127]")
    return data


def encode(message: MidiMessage) -> bytes:
    """
    Encode a typed message to its wire form.

    Raises:
        InvalidArgumentError: For out-of-range fields, InvalidMessage or None
    """
    if isinstance(message, NoteOff):
        return note_off(message.channel, message.note, message.velocity)
    if isinstance(message, NoteOn):
        return note_on(message.channel, message.note, message.velocity)
    if isinstance(message, PolyKeyPressure):
        return poly_key_pressure(message.channel, message.note, message.pressure)
    if isinstance(message, ControlChange):
        return control_change(message.channel, message.controller, message.value)
    if isinstance(message, ProgramChange):
        return program_change(message.channel, message.patch)
    if isinstance(message, ChannelPressure):
        return channel_pressure(message.channel, message.pressure)
    if isinstance(message, PitchBend):
        return pitch_bend(message.channel, message.value)
    if isinstance(message, SysEx):
        return sysex(message.vendor_id, message.data)
    raise InvalidArgumentError("message", message, "is not an encodable MIDI message")


# =================================================================
# Decoding
# =================================================================


def dissect(data: bytes) -> MidiMessageType:
    """
    Classify a raw MIDI message.

    Args:
        data: One complete wire message

    Returns:
        The message type, or INVALID for a malformed message

    Raises:
        InvalidArgumentError: If data is None or empty, or its status byte
            is in the unsupported 0xF1-0xFF range
    """
    if data is None or len(data) == 0:
        raise InvalidArgumentError("data", data, "must be a non-empty message")
    status = data[0]
    if status < 0x80:
        return MidiMessageType.INVALID
    if status == SYSEX_START:
        if len(data) < 3 or data[-1] != SYSEX_END or any(b & 0x80 for b in data[1:-1]):
            return MidiMessageType.INVALID
        return MidiMessageType.SYSTEM_COMMON_SYSEX
    if status > SYSEX_START:
        raise InvalidArgumentError("data", bytes(data), f"status byte {status:#04x} is not supported")

    message_type, length = _CHANNEL_MESSAGES[status & 0xF0]
    if len(data) != length or any(b & 0x80 for b in data[1:]):
        return MidiMessageType.INVALID
    return message_type


def decode(data: bytes) -> MidiMessage:
    """
    Decode a raw MIDI message into its typed model.

    Malformed messages decode to InvalidMessage; the error conditions are
    those of dissect().
    """
    message_type = dissect(data)
    data = bytes(data)
    if message_type is MidiMessageType.INVALID:
        return InvalidMessage(data=data)
    if message_type is MidiMessageType.SYSTEM_COMMON_SYSEX:
        return SysEx(vendor_id=data[1], data=data)

    channel = (data[0] & 0x0F) + 1
    if message_type is MidiMessageType.NOTE_OFF:
        return NoteOff(channel=channel, note=data[1], velocity=data[2])
    if message_type is MidiMessageType.NOTE_ON:
        return NoteOn(channel=channel, note=data[1], velocity=data[2])
    if message_type is MidiMessageType.POLYPHONIC_KEY_PRESSURE:
        return PolyKeyPressure(channel=channel, note=data[1], pressure=data[2])
    if message_type is MidiMessageType.CONTROL_CHANGE:
        return ControlChange(channel=channel, controller=data[1], value=data[2])
    if message_type is MidiMessageType.PROGRAM_CHANGE:
        return ProgramChange(channel=channel, patch=data[1])
    if message_type is MidiMessageType.CHANNEL_PRESSURE:
        return ChannelPressure(channel=channel, pressure=data[1])
    return PitchBend(channel=channel, value=((data[2] << 7) | data[1]) - PITCH_BEND_CENTER)
