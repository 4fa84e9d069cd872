"""Generic utility modules for netmidi.

- addresses: IPv4 multicast endpoint validation
- observer: Copy-on-write observer registry
- persistence: Pydantic model load/save helpers
"""

from .addresses import validate_group, validate_ipv4, validate_port
from .observer import ObserverManager
from .persistence import PydanticPersistence

__all__ = ["ObserverManager", "PydanticPersistence", "validate_group", "validate_ipv4", "validate_port"]
