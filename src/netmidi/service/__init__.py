"""Service lifecycle contract, base implementation and composition."""

from .base import AbstractService, Service
from .composite import CompositeService, Task
from .null import NullService

__all__ = ["AbstractService", "CompositeService", "NullService", "Service", "Task"]
