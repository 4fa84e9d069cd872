"""netmidi: MIDI over UDP multicast, built on observable services."""

__version__ = "0.1.0"

from .activity import ActivityMonitor
from .midi import MidiPortBridge, MidiService, NullRawMidiService, UdpRawMidiService
from .net import UdpMulticastService
from .protocols import ServiceStatus, TransferDirection
from .service import AbstractService, CompositeService, Service

__all__ = [
    "AbstractService",
    "ActivityMonitor",
    "CompositeService",
    "MidiPortBridge",
    "MidiService",
    "NullRawMidiService",
    "Service",
    "ServiceStatus",
    "TransferDirection",
    "UdpMulticastService",
    "UdpRawMidiService",
]
