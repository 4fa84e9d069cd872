"""Config commands: inspect and initialize the configuration file."""

import click

from netmidi.exceptions import NetMidiError
from netmidi.models import NetMidiConfig, default_config_path

from ..context import fail, load_config


def _config_path(ctx: click.Context):
    return (ctx.find_root().obj or {}).get("config_path") or default_config_path()


@click.group(name="config")
def config():
    """Inspect or create the configuration file."""
    pass


@config.command(name="show")
@click.pass_context
def show_config(ctx):
    """Print the effective configuration as JSON."""
    try:
        click.echo(load_config(ctx).model_dump_json(indent=2))
    except NetMidiError as e:
        fail(ctx, e)


@config.command(name="init")
@click.option("--force", is_flag=True, help="Overwrite an existing file (a .bak copy is kept)")
@click.pass_context
def init_config(ctx, force: bool):
    """Write a configuration file with default values."""
    path = _config_path(ctx)
    if path.exists() and not force:
        click.echo(f"Config file already exists: {path} (use --force to overwrite)", err=True)
        ctx.exit(1)
    NetMidiConfig().save(path)
    click.echo(f"Wrote default configuration to {path}")


@config.command(name="path")
@click.pass_context
def config_path(ctx):
    """Print the location of the configuration file."""
    click.echo(str(_config_path(ctx)))
