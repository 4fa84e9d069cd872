"""A service without resources."""

import logging

from .base import AbstractService

logger = logging.getLogger(__name__)


class NullService(AbstractService):
    """
    Service that holds no resources; start and stop only change its status.

    Useful as a placeholder child and as a controllable service in tests.
    """

    def __init__(self, name: str = "NullService"):
        super().__init__(name)

    def _start_service(self) -> None:
        pass

    def _stop_service(self) -> None:
        pass

    def fail(self) -> None:
        """Force this service into ERROR (simulates a runtime failure)."""
        self._error()
