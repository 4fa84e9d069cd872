"""Listen command: print MIDI messages received from the network."""

import logging
import time
from datetime import datetime
from typing import Optional

import click

from netmidi.activity import ActivityMonitor
from netmidi.exceptions import NetMidiError
from netmidi.midi import MIDI_MESSAGE_ADAPTER, MidiMessage
from netmidi.protocols import ServiceStatus, TransferDirection

from ..context import create_midi_service, describe, fail, load_config

logger = logging.getLogger(__name__)


class _MessagePrinter:
    """Echoes received messages to stdout (called from the delivery thread)."""

    def __init__(self, as_json: bool):
        self._as_json = as_json

    def on_midi_message(self, direction: TransferDirection, message: MidiMessage) -> None:
        if direction is not TransferDirection.RX:
            return
        if self._as_json:
            click.echo(MIDI_MESSAGE_ADAPTER.dump_json(message).decode())
        else:
            timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
            click.echo(f"[{timestamp}] {describe(message)}")


class _ActivityPrinter:
    def on_activity_changed(self, activity: str, active: bool) -> None:
        click.echo(f"  ({activity}: {'on' if active else 'off'})", err=True)


@click.command(name="listen")
@click.option("--group", "-g", type=str, default=None, help="Multicast group (default: from config)")
@click.option("--port", "-p", type=int, default=None, help="UDP port (default: from config)")
@click.option("--json", "as_json", is_flag=True, help="Print one JSON object per message")
@click.option("--activity", is_flag=True, help="Also report activity changes on stderr")
@click.pass_context
def listen(ctx, group: Optional[str], port: Optional[int], as_json: bool, activity: bool):
    """
    Print MIDI messages received on the multicast group.

    Runs until Ctrl+C. Malformed datagrams are counted and reported when
    the command ends.
    """
    try:
        config = load_config(ctx)
        midi_service = create_midi_service(config, group, port)
    except NetMidiError as e:
        fail(ctx, e)

    midi_service.register_midi_observer(_MessagePrinter(as_json))
    monitor = None
    if activity:
        monitor = ActivityMonitor(
            midi_service,
            check_interval=config.activity_check_interval,
            timeout=config.activity_timeout,
        )
        monitor.register_activity_observer(_ActivityPrinter())

    midi_service.start()
    if midi_service.status is not ServiceStatus.ACTIVE:
        midi_service.stop()
        click.echo(f"ERROR: could not join {midi_service.group}:{midi_service.port} (see log)", err=True)
        ctx.exit(1)

    click.echo(f"Listening on {midi_service.group}:{midi_service.port} - press Ctrl+C to stop", err=True)
    if monitor is not None:
        monitor.start()

    failed = False
    try:
        while midi_service.status is ServiceStatus.ACTIVE:
            time.sleep(0.1)
        click.echo(f"Service stopped unexpectedly ({midi_service.status.name})", err=True)
        failed = True
    except KeyboardInterrupt:
        click.echo("\nStopping...", err=True)
    finally:
        if monitor is not None:
            monitor.stop()
        midi_service.stop()

    if midi_service.rx_errors:
        click.echo(f"{midi_service.rx_errors} malformed message(s) ignored", err=True)
    if failed:
        ctx.exit(1)
