"""Root of the netmidi exception hierarchy.

Errors carry two renderings: `user_message` is what the CLI prints,
`technical_message` is what goes to the log file. An optional
`recovery_hint` is printed below the message.
"""

from typing import Optional


class NetMidiError(Exception):
    """
    Base exception for all netmidi errors.

    Attributes:
        user_message: Short message for the terminal
        technical_message: Message with the offending values, for logs
        recovery_hint: What the user can change to fix it (may be None)
    """

    def __init__(
        self,
        user_message: str,
        technical_message: Optional[str] = None,
        recovery_hint: Optional[str] = None,
    ):
        super().__init__(user_message)
        self.user_message = user_message
        self.technical_message = technical_message or user_message
        self.recovery_hint = recovery_hint

    def __str__(self) -> str:
        return self.user_message

    def get_full_message(self) -> str:
        """User message followed by the recovery hint, if there is one."""
        if not self.recovery_hint:
            return self.user_message
        return f"{self.user_message}\n\nSuggestion: {self.recovery_hint}"
