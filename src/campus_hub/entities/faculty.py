"""Faculty availability domain entities."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class AvailabilityStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    BUSY = "BUSY"
    IN_MEETING = "IN_MEETING"
    ON_LEAVE = "ON_LEAVE"
    NOT_AVAILABLE = "NOT_AVAILABLE"


class Weekday(str, Enum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @classmethod
    def of(cls, day: date) -> "Weekday":
        """Weekday of a calendar date."""
        return list(cls)[day.weekday()]


@dataclass(frozen=True)
class DateOverride:
    """Availability exception for a single calendar date."""

    date: date
    status: AvailabilityStatus
    note: str | None = None


@dataclass(frozen=True)
class FacultyAvailability:
    """Current availability of a faculty member.

    Has no identity of its own; it always lives inside a Faculty.
    """

    status: AvailabilityStatus = AvailabilityStatus.AVAILABLE
    message: str | None = None
    updated_at: datetime | None = None
    date_overrides: tuple[DateOverride, ...] = ()

    def override_for(self, day: date) -> DateOverride | None:
        for override in self.date_overrides:
            if override.date == day:
                return override
        return None


@dataclass(frozen=True)
class WeeklySlot:
    """A recurring weekly office-hours slot. Times are "HH:MM" strings."""

    id: str
    day: Weekday
    start_time: str
    end_time: str
    location: str | None = None


@dataclass(frozen=True)
class Faculty:
    """Domain entity for a faculty profile.

    The id is the id of the owning User account.
    """

    id: str
    name: str
    email: str
    department: str | None = None
    designation: str | None = None
    image: str | None = None
    availability: FacultyAvailability = field(default_factory=FacultyAvailability)
    weekly_schedule: tuple[WeeklySlot, ...] = ()
