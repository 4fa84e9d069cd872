"""Service and protocol contract exceptions.

- InvalidArgumentError: A caller passed a value outside the contract
  (out-of-range MIDI field, missing payload, bad network setting)
- UnsupportedOperationError: The service does not implement an optional operation
"""

from typing import Any

from .base import NetMidiError


class InvalidArgumentError(NetMidiError, ValueError):
    """An argument violates the caller contract of an operation."""

    def __init__(self, argument: str, value: Any, reason: str):
        """
        Initialize invalid argument error.

        Args:
            argument: Name of the offending argument
            value: The rejected value
            reason: Why the value is rejected
        """
        super().__init__(
            user_message=f"Invalid value for '{argument}': {reason}",
            technical_message=f"Invalid argument {argument}={value!r}: {reason}",
        )
        self.argument = argument
        self.value = value
        self.reason = reason


class UnsupportedOperationError(NetMidiError, NotImplementedError):
    """The requested operation is not supported by this service."""

    def __init__(self, operation: str, service: object):
        super().__init__(
            user_message=f"Operation '{operation}' is not supported by {service}",
            technical_message=f"{type(service).__name__}.{operation} is unsupported",
        )
        self.operation = operation
