"""Protocol definitions for events and observers.

- Events: Service status and transfer direction
- Observers: Protocols for components that react to service and MIDI events
"""

from .events import ServiceStatus, TransferDirection
from .observers import (
    ActivityObserver,
    MessageObserver,
    MidiObserver,
    RawMidiObserver,
    SettingsObserver,
    StatusObserver,
)

__all__ = [
    # Observers
    "ActivityObserver",
    "MessageObserver",
    "MidiObserver",
    "RawMidiObserver",
    # Events
    "ServiceStatus",
    "SettingsObserver",
    "StatusObserver",
    "TransferDirection",
]
