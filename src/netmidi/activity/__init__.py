"""Activity tracking and timeout-based liveness monitoring."""

from .monitor import ActivityMonitor
from .monitorable import NEVER, ActivityMonitorable, ActivityRecord, utc_now

__all__ = ["NEVER", "ActivityMonitor", "ActivityMonitorable", "ActivityRecord", "utc_now"]
