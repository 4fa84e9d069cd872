"""Local MIDI port commands: list ports and bridge them to the network."""

import logging
import time
from typing import Optional

import click
import mido

from netmidi.exceptions import NetMidiError
from netmidi.midi import MidiPortBridge
from netmidi.protocols import ServiceStatus

from ..context import create_midi_service, fail, load_config

logger = logging.getLogger(__name__)


@click.command(name="ports")
def ports():
    """List available local MIDI ports."""
    inputs = mido.get_input_names()
    outputs = mido.get_output_names()

    click.echo("MIDI Input Ports:\n")
    if not inputs:
        click.echo("  No MIDI input ports found.")
    else:
        for i, port in enumerate(inputs):
            click.echo(f"  [{i}] {port}")

    click.echo("\nMIDI Output Ports:\n")
    if not outputs:
        click.echo("  No MIDI output ports found.")
    else:
        for i, port in enumerate(outputs):
            click.echo(f"  [{i}] {port}")


@click.command(name="bridge")
@click.option("--input", "-i", "input_name", type=str, default=None, help="Local input port to send to the network")
@click.option("--output", "-o", "output_name", type=str, default=None, help="Local output port to play network messages")
@click.option("--group", "-g", type=str, default=None, help="Multicast group (default: from config)")
@click.option("--port", "-p", type=int, default=None, help="UDP port (default: from config)")
@click.pass_context
def bridge(ctx, input_name: Optional[str], output_name: Optional[str], group: Optional[str], port: Optional[int]):
    """
    Bridge local MIDI ports and the multicast group.

    Use 'netmidi ports' to see the port names. Press Ctrl+C to stop.
    """
    if input_name is None and output_name is None:
        raise click.UsageError("give at least one of --input and --output")

    try:
        config = load_config(ctx)
        midi_service = create_midi_service(config, group, port)
    except NetMidiError as e:
        fail(ctx, e)

    port_bridge = MidiPortBridge(midi_service, input_name=input_name, output_name=output_name)
    port_bridge.start()
    if port_bridge.status is not ServiceStatus.ACTIVE:
        port_bridge.stop()
        click.echo("ERROR: could not start the bridge (see log)", err=True)
        ctx.exit(1)

    click.echo(
        f"Bridging {input_name or '-'} -> {midi_service.group}:{midi_service.port} -> {output_name or '-'}"
        " - press Ctrl+C to stop",
        err=True,
    )
    try:
        while port_bridge.status is ServiceStatus.ACTIVE:
            time.sleep(0.1)
        click.echo(f"Bridge stopped unexpectedly ({port_bridge.status.name})", err=True)
    except KeyboardInterrupt:
        click.echo("\nStopping...", err=True)
    finally:
        port_bridge.stop()
