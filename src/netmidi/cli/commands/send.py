"""Send commands: transmit a single MIDI message to the multicast group."""

import logging
import threading
from typing import Optional

import click

from netmidi.exceptions import NetMidiError
from netmidi.midi import (
    ChannelPressure,
    ControlChange,
    MidiMessage,
    NoteOff,
    NoteOn,
    PitchBend,
    PolyKeyPressure,
    ProgramChange,
    SysEx,
)
from netmidi.protocols import ServiceStatus, TransferDirection

from ..context import create_midi_service, describe, fail, load_config

logger = logging.getLogger(__name__)

SEND_TIMEOUT = 2.0


class _SentWaiter:
    """Signals once the transport reports a datagram as sent."""

    def __init__(self):
        self.sent = threading.Event()

    def on_raw_midi(self, direction: TransferDirection, data: bytes) -> None:
        if direction is TransferDirection.TX:
            self.sent.set()


def _parse_hex(ctx, param, value: str) -> bytes:
    try:
        data = bytes.fromhex(value.replace(",", " "))
    except ValueError:
        raise click.BadParameter("expected hex bytes, e.g. 'F0 7E 7F 06 01 F7'") from None
    if not data:
        raise click.BadParameter("at least one byte is required")
    return data


def _transmit(ctx: click.Context, message: Optional[MidiMessage] = None, raw: Optional[bytes] = None) -> None:
    """Start a MIDI service, send one message, wait until it is on the wire, stop."""
    options = ctx.find_object(dict) or {}
    try:
        config = load_config(ctx)
        midi_service = create_midi_service(config, options.get("group"), options.get("port"))
    except NetMidiError as e:
        fail(ctx, e)

    waiter = _SentWaiter()
    midi_service.register_raw_midi_observer(waiter)
    midi_service.start()
    try:
        if midi_service.status is not ServiceStatus.ACTIVE:
            click.echo(f"ERROR: could not join {midi_service.group}:{midi_service.port} (see log)", err=True)
            ctx.exit(1)

        if raw is not None:
            queued = midi_service.raw_service.send_raw_message(raw)
            shown = raw.hex(" ")
        else:
            queued = midi_service.send_message(message)
            shown = describe(message)

        if not queued or not waiter.sent.wait(timeout=SEND_TIMEOUT):
            click.echo(f"ERROR: message was not sent: {shown}", err=True)
            ctx.exit(1)
        click.echo(f"Sent {shown}")
    except NetMidiError as e:
        fail(ctx, e)
    finally:
        midi_service.stop()


@click.group(name="send")
@click.option("--group", "-g", type=str, default=None, help="Multicast group (default: from config)")
@click.option("--port", "-p", type=int, default=None, help="UDP port (default: from config)")
@click.pass_context
def send(ctx, group: Optional[str], port: Optional[int]):
    """
    Send one MIDI message to the multicast group.

    Channels are 1-16, data values 0-127, pitch bend -8192..8191.

    \b
    Examples:
      netmidi send note-on 1 60 100
      netmidi send control-change 2 7 127
      netmidi send sysex "F0 7E 7F 06 01 F7"
    """
    ctx.ensure_object(dict)
    ctx.obj["group"] = group
    ctx.obj["port"] = port


@send.command(name="note-on")
@click.argument("channel", type=int)
@click.argument("note", type=int)
@click.argument("velocity", type=int)
@click.pass_context
def send_note_on(ctx, channel: int, note: int, velocity: int):
    """Send a Note On."""
    _transmit(ctx, NoteOn(channel=channel, note=note, velocity=velocity))


@send.command(name="note-off")
@click.argument("channel", type=int)
@click.argument("note", type=int)
@click.argument("velocity", type=int, default=0)
@click.pass_context
def send_note_off(ctx, channel: int, note: int, velocity: int):
    """Send a Note Off."""
    _transmit(ctx, NoteOff(channel=channel, note=note, velocity=velocity))


@send.command(name="poly-pressure")
@click.argument("channel", type=int)
@click.argument("note", type=int)
@click.argument("pressure", type=int)
@click.pass_context
def send_poly_pressure(ctx, channel: int, note: int, pressure: int):
    """Send a Polyphonic Key Pressure (aftertouch)."""
    _transmit(ctx, PolyKeyPressure(channel=channel, note=note, pressure=pressure))


@send.command(name="control-change")
@click.argument("channel", type=int)
@click.argument("controller", type=int)
@click.argument("value", type=int)
@click.pass_context
def send_control_change(ctx, channel: int, controller: int, value: int):
    """Send a Control Change."""
    _transmit(ctx, ControlChange(channel=channel, controller=controller, value=value))


@send.command(name="program-change")
@click.argument("channel", type=int)
@click.argument("patch", type=int)
@click.pass_context
def send_program_change(ctx, channel: int, patch: int):
    """Send a Program Change."""
    _transmit(ctx, ProgramChange(channel=channel, patch=patch))


@send.command(name="channel-pressure")
@click.argument("channel", type=int)
@click.argument("pressure", type=int)
@click.pass_context
def send_channel_pressure(ctx, channel: int, pressure: int):
    """Send a Channel Pressure (aftertouch)."""
    _transmit(ctx, ChannelPressure(channel=channel, pressure=pressure))


@send.command(name="pitch-bend")
@click.argument("channel", type=int)
@click.argument("value", type=int)
@click.pass_context
def send_pitch_bend(ctx, channel: int, value: int):
    """Send a Pitch Bend (0 = center)."""
    _transmit(ctx, PitchBend(channel=channel, value=value))


@send.command(name="sysex")
@click.argument("data", callback=_parse_hex)
@click.pass_context
def send_sysex(ctx, data: bytes):
    """Send a complete System Exclusive message given as hex (F0 ... F7)."""
    vendor_id = data[1] if len(data) >= 3 else 0
    _transmit(ctx, SysEx(vendor_id=vendor_id, data=data))


@send.command(name="raw")
@click.argument("data", callback=_parse_hex)
@click.pass_context
def send_raw(ctx, data: bytes):
    """Send arbitrary bytes as one datagram, without validation."""
    _transmit(ctx, raw=data)
