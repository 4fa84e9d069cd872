"""Data models for netmidi."""

from .config import DEFAULT_GROUP, DEFAULT_PORT, NetMidiConfig, default_config_path
from .enums import OverflowPolicy

__all__ = [
    "DEFAULT_GROUP",
    "DEFAULT_PORT",
    # Models
    "NetMidiConfig",
    # Enums
    "OverflowPolicy",
    "default_config_path",
]
