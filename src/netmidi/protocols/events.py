"""Domain events and enumerations shared by all services.

- ServiceStatus: Lifecycle state of every service
- TransferDirection: Whether a message was transmitted or received
"""

from enum import Enum


class ServiceStatus(Enum):
    """Lifecycle state of a service."""

    STOPPED = "stopped"  # Initial state; no resources held
    ACTIVE = "active"    # Running normally
    ERROR = "error"      # Failed; stays here until stopped or restarted


class TransferDirection(Enum):
    """Direction of a message relative to the local service."""

    TX = "tx"  # Sent by this process
    RX = "rx"  # Received from the network
