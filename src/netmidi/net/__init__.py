"""Network transports."""

from .udp_multicast import UdpMulticastService

__all__ = ["UdpMulticastService"]
