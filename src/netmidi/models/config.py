"""Application configuration model."""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from netmidi.utils.addresses import validate_group, validate_ipv4
from netmidi.utils.persistence import PydanticPersistence

from .enums import OverflowPolicy

DEFAULT_GROUP = "225.0.0.37"
DEFAULT_PORT = 21928


def default_config_path() -> Path:
    """Location of the user configuration file (~/.netmidi/config.json)."""
    return Path.home() / ".netmidi" / "config.json"


class NetMidiConfig(BaseModel):
    """Network and runtime settings for MIDI over UDP multicast."""

    # Network
    group: str = Field(default=DEFAULT_GROUP, description="IPv4 multicast group address")
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535, description="UDP port shared by the group")
    interface: str = Field(
        default="0.0.0.0",
        description="Local interface address used to join the group and send (0.0.0.0 = OS default)",
    )

    # Transport
    rx_queue_size: int = Field(default=16, ge=1, description="Capacity of the receive queue (datagrams)")
    tx_queue_size: int = Field(default=16, ge=1, description="Capacity of the transmit queue (datagrams)")
    receive_buffer_size: int = Field(
        default=2048, ge=1, description="Receive buffer size in bytes; longer datagrams are truncated"
    )
    overflow_policy: OverflowPolicy = Field(
        default=OverflowPolicy.DROP_NEWEST, description="What to drop when a queue is full"
    )
    poll_interval: float = Field(
        default=0.2, gt=0, description="How often worker threads re-check for shutdown (seconds)"
    )

    # Activity monitoring
    activity_check_interval: float = Field(
        default=0.1, gt=0, description="How often the activity monitor polls (seconds)"
    )
    activity_timeout: float = Field(
        default=0.25, ge=0, description="How long an activity stays active after it happened (seconds)"
    )

    @field_validator("group")
    @classmethod
    def check_group(cls, value: str) -> str:
        """Ensure the group is an IPv4 multicast address."""
        return validate_group(value)

    @field_validator("interface")
    @classmethod
    def check_interface(cls, value: str) -> str:
        """Ensure the interface is an IPv4 address."""
        return validate_ipv4(value)

    def transport_options(self) -> dict:
        """Keyword arguments for UdpMulticastService / UdpRawMidiService."""
        return {
            "interface": self.interface,
            "rx_queue_size": self.rx_queue_size,
            "tx_queue_size": self.tx_queue_size,
            "receive_buffer_size": self.receive_buffer_size,
            "overflow_policy": self.overflow_policy,
            "poll_interval": self.poll_interval,
        }

    @classmethod
    def load_or_default(cls, path: Path | None = None) -> "NetMidiConfig":
        """
        Load config from file or return default.

        Args:
            path: Path to config file. If None, uses default location
                  (~/.netmidi/config.json).

        Raises:
            ConfigFileInvalidError: If config file has invalid JSON syntax
            ConfigValidationError: If config values fail validation
        """
        if path is None:
            path = default_config_path()
        return PydanticPersistence.load_json_or_default(path, cls)

    def save(self, path: Path | None = None) -> None:
        """Save config to file (atomic write, previous file kept as .bak)."""
        if path is None:
            path = default_config_path()
        PydanticPersistence.save_json(self, path)
