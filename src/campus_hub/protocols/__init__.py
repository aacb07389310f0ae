"""Protocol interfaces for swappable implementations.

Protocols enable:
- Swapping the store (Redis -> in-memory for tests)
- Driving time-dependent code with a fake clock
- Clear separation of concerns
"""

from .campus_store import CampusStore
from .clock import Clock, SystemClock

__all__ = [
    "CampusStore",
    "Clock",
    "SystemClock",
]
