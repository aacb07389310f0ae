"""Clock protocol, so time-dependent code can be driven by tests."""

from datetime import datetime, timezone
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Source of the current time."""

    def now(self) -> datetime:
        """Return the current time as a timezone-aware UTC datetime."""
        ...


class SystemClock:
    """Wall clock. Satisfies the Clock protocol."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
