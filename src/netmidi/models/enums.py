"""Enumerations for netmidi."""

from enum import Enum


class OverflowPolicy(str, Enum):
    """What a bounded transport queue does when it is full."""

    DROP_NEWEST = "drop_newest"  # Discard the item being offered (favor completeness of what is queued)
    DROP_OLDEST = "drop_oldest"  # Evict the head of the queue to make room (favor freshness)
