"""Validation of IPv4 multicast endpoints."""

import ipaddress

from netmidi.exceptions import InvalidArgumentError


def validate_ipv4(address: str, argument: str = "interface") -> str:
    """Return the normalized dotted-quad form of an IPv4 address."""
    try:
        return str(ipaddress.IPv4Address(address))
    except (ipaddress.AddressValueError, TypeError) as e:
        raise InvalidArgumentError(argument, address, "must be an IPv4 address") from e


def validate_group(group: str) -> str:
    """Return the normalized group address; it must lie in 224.0.0.0/4."""
    normalized = validate_ipv4(group, "group")
    if not ipaddress.IPv4Address(normalized).is_multicast:
        raise InvalidArgumentError("group", group, "must be an IPv4 multicast address (224.0.0.0/4)")
    return normalized


def validate_port(port: int) -> int:
    """Return the port; 0 lets the OS pick one at bind time."""
    if isinstance(port, bool) or not isinstance(port, int) or not 0 <= port <= 65535:
        raise InvalidArgumentError("port", port, "must be an integer in [0, 65535]")
    return port
