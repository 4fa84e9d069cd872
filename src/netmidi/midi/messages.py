"""Typed MIDI message models.

Channel-voice messages carry a 1-based channel (1-16). Models are frozen
(hashable, safe to share between threads) and tagged with a `type`
discriminator, so the `MidiMessage` union can be validated from and dumped
to JSON through `MIDI_MESSAGE_ADAPTER`.

Models do not range-check their fields; the codec does, when encoding.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_serializer, field_validator


class MidiMessageType(str, Enum):
    """Classification of a raw MIDI message."""

    INVALID = "invalid"
    NOTE_OFF = "note_off"
    NOTE_ON = "note_on"
    POLYPHONIC_KEY_PRESSURE = "poly_key_pressure"
    CONTROL_CHANGE = "control_change"
    PROGRAM_CHANGE = "program_change"
    CHANNEL_PRESSURE = "channel_pressure"
    PITCH_BEND = "pitch_bend"
    SYSTEM_COMMON_SYSEX = "sysex"


class _ChannelMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    channel: int = Field(description="MIDI channel (1-16)")


class NoteOff(_ChannelMessage):
    type: Literal[MidiMessageType.NOTE_OFF] = MidiMessageType.NOTE_OFF
    note: int = Field(description="Note number (0-127)")
    velocity: int = Field(description="Release velocity (0-127)")


class NoteOn(_ChannelMessage):
    type: Literal[MidiMessageType.NOTE_ON] = MidiMessageType.NOTE_ON
    note: int = Field(description="Note number (0-127)")
    velocity: int = Field(description="Velocity (0-127)")


class PolyKeyPressure(_ChannelMessage):
    type: Literal[MidiMessageType.POLYPHONIC_KEY_PRESSURE] = MidiMessageType.POLYPHONIC_KEY_PRESSURE
    note: int = Field(description="Note number (0-127)")
    pressure: int = Field(description="Aftertouch pressure (0-127)")


class ControlChange(_ChannelMessage):
    type: Literal[MidiMessageType.CONTROL_CHANGE] = MidiMessageType.CONTROL_CHANGE
    controller: int = Field(description="Controller number (0-127)")
    value: int = Field(description="Controller value (0-127)")


class ProgramChange(_ChannelMessage):
    type: Literal[MidiMessageType.PROGRAM_CHANGE] = MidiMessageType.PROGRAM_CHANGE
    patch: int = Field(description="Patch number (0-127)")


class ChannelPressure(_ChannelMessage):
    type: Literal[MidiMessageType.CHANNEL_PRESSURE] = MidiMessageType.CHANNEL_PRESSURE
    pressure: int = Field(description="Aftertouch pressure (0-127)")


class PitchBend(_ChannelMessage):
    type: Literal[MidiMessageType.PITCH_BEND] = MidiMessageType.PITCH_BEND
    value: int = Field(description="Signed bend (-8192..8191, 0 = center)")


class SysEx(BaseModel):
    """
    System Exclusive message.

    `data` is the complete wire message including the 0xF0 and 0xF7
    brackets; `vendor_id` repeats its second byte.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal[MidiMessageType.SYSTEM_COMMON_SYSEX] = MidiMessageType.SYSTEM_COMMON_SYSEX
    vendor_id: int = Field(description="Manufacturer ID (0-127)")
    data: bytes = Field(description="Complete message, F0 ... F7")

    @field_validator("data", mode="before")
    @classmethod
    def parse_data(cls, v: Any) -> Any:
        """Accept the spaced hex written by serialize_data."""
        if isinstance(v, str):
            return bytes.fromhex(v)
        return v

    @field_serializer("data")
    def serialize_data(self, data: bytes) -> str:
        """Serialize bytes as spaced hex."""
        return data.hex(" ")


class InvalidMessage(BaseModel):
    """A present but structurally malformed raw message."""

    model_config = ConfigDict(frozen=True)

    type: Literal[MidiMessageType.INVALID] = MidiMessageType.INVALID
    data: bytes = Field(description="The offending raw bytes")

    @field_validator("data", mode="before")
    @classmethod
    def parse_data(cls, v: Any) -> Any:
        """Accept the spaced hex written by serialize_data."""
        if isinstance(v, str):
            return bytes.fromhex(v)
        return v

    @field_serializer("data")
    def serialize_data(self, data: bytes) -> str:
        """Serialize bytes as spaced hex."""
        return data.hex(" ")


MidiMessage = Annotated[
    Union[
        NoteOff,
        NoteOn,
        PolyKeyPressure,
        ControlChange,
        ProgramChange,
        ChannelPressure,
        PitchBend,
        SysEx,
        InvalidMessage,
    ],
    Field(discriminator="type"),
]

MIDI_MESSAGE_ADAPTER: TypeAdapter[MidiMessage] = TypeAdapter(MidiMessage)
