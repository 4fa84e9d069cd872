"""Command-line interface for netmidi."""
