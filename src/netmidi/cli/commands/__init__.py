"""CLI commands for netmidi."""

from .config import config
from .listen import listen
from .ports import bridge, ports
from .send import send

__all__ = ["bridge", "config", "listen", "ports", "send"]
