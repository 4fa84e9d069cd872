"""Helpers shared by the CLI commands."""

import logging
import sys
from typing import NoReturn, Optional

import click

from netmidi.exceptions import NetMidiError, format_error_for_display
from netmidi.midi import MidiMessage, MidiService, UdpRawMidiService
from netmidi.models import NetMidiConfig

logger = logging.getLogger(__name__)


def fail(ctx: click.Context, error: Exception) -> NoReturn:
    """Show an error without a traceback and exit with status 1."""
    detail = error.technical_message if isinstance(error, NetMidiError) else str(error)
    logger.error(f"Command failed: {detail}", exc_info=True)
    user_message, recovery_hint = format_error_for_display(error)
    click.echo(f"ERROR: {user_message}", err=True)
    if recovery_hint:
        click.echo(f"\n{recovery_hint}", err=True)
    log_path = (ctx.find_root().obj or {}).get("log_path")
    if log_path:
        click.echo(f"\nFor details, check the log file: {log_path}", err=True)
    sys.exit(1)


def load_config(ctx: click.Context) -> NetMidiConfig:
    """Load the configuration selected by the global --config option."""
    return NetMidiConfig.load_or_default((ctx.find_root().obj or {}).get("config_path"))


def create_midi_service(config: NetMidiConfig, group: Optional[str], port: Optional[int]) -> MidiService:
    """Create a MIDI service over UDP, with optional group/port overrides."""
    raw_service = UdpRawMidiService(
        group if group is not None else config.group,
        port if port is not None else config.port,
        **config.transport_options(),
    )
    return MidiService(raw_service)


def describe(message: MidiMessage) -> str:
    """One-line human readable form of a message."""
    fields = message.model_dump(mode="json", exclude={"type"})
    details = " ".join(f"{key}={value}" for key, value in fields.items())
    return f"{message.type.value:<18} {details}"
