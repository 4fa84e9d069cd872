"""Allow running netmidi as a module: python -m netmidi."""

from netmidi.cli.main import cli

if __name__ == "__main__":
    cli()
