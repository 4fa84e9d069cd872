"""Main CLI entry point."""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

import click

from netmidi import __version__

from .commands import bridge, config, listen, ports, send

logger = logging.getLogger(__name__)


def default_log_path() -> Path:
    """Default rotating log file (~/.netmidi/logs/netmidi.log)."""
    return Path.home() / ".netmidi" / "logs" / "netmidi.log"


def setup_logging(verbose: int, debug: bool, log_file: Optional[Path]) -> Path:
    """
    Configure logging for the application.

    Log records always go to a rotating file. With -v/-vv they are echoed
    to stderr too, so stdout stays clean for message output.

    Args:
        verbose: Verbosity count (0 = WARNING, 1 = INFO, 2+ = DEBUG)
        debug: If True, log at DEBUG level to ./netmidi-debug.log
        log_file: Custom log file path (optional)

    Returns:
        Path of the log file
    """
    if debug or verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    if log_file:
        log_path = log_file
    elif debug:
        log_path = Path.cwd() / "netmidi-debug.log"
    else:
        log_path = default_log_path()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Create rotating file handler (keeps last 5 files, max 10MB each)
    file_handler = logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(file_handler)

    if verbose > 0:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    logger.info(f"Logging configured: level={logging.getLevelName(level)}, file={log_path}")
    return log_path


@click.group()
@click.pass_context
@click.version_option(version=__version__, prog_name="netmidi")
@click.option(
    '--config',
    'config_path',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='Config file (default: ~/.netmidi/config.json)'
)
@click.option(
    '-v', '--verbose',
    count=True,
    help='Increase verbosity (-v: INFO, -vv: DEBUG), also echoed to stderr'
)
@click.option(
    '--debug',
    is_flag=True,
    help='Enable debug mode (DEBUG level, logs to ./netmidi-debug.log)'
)
@click.option(
    '--log-file',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='Custom log file path'
)
def cli(ctx, config_path: Optional[Path], verbose: int, debug: bool, log_file: Optional[Path]):
    """
    netmidi - MIDI over UDP multicast.

    Every MIDI message travels as one UDP datagram to a multicast group
    (default 225.0.0.37:21928), so any number of hosts on the LAN can
    send and listen at once.

    \b
    Examples:
      # Print everything received on the default group
      netmidi listen

      # Send a program change on channel 1
      netmidi send program-change 1 5

      # Bridge a local keyboard to the network
      netmidi bridge --input "USB Keyboard"

      # Show the effective configuration
      netmidi config show
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["log_path"] = setup_logging(verbose, debug, log_file)


# Register commands
cli.add_command(listen)
cli.add_command(send)
cli.add_command(ports)
cli.add_command(bridge)
cli.add_command(config)

if __name__ == "__main__":
    cli()
