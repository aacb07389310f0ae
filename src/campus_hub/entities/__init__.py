"""Domain entities for internal representation.

These are pure frozen dataclasses used internally by services and
repositories. They are NOT used for API contracts: the GraphQL layer
has its own types in the graphql package.

Entities should have:
- No JSON serialization logic
- No GraphQL or Pydantic coupling
- No external dependencies
"""

from .appointment import Appointment, AppointmentStatus
from .broadcast import Audience, Broadcast
from .faculty import (
    AvailabilityStatus,
    DateOverride,
    Faculty,
    FacultyAvailability,
    WeeklySlot,
    Weekday,
)
from .notification import Notification, NotificationKind
from .user import Principal, Role, User

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "Audience",
    "AvailabilityStatus",
    "Broadcast",
    "DateOverride",
    "Faculty",
    "FacultyAvailability",
    "Notification",
    "NotificationKind",
    "Principal",
    "Role",
    "User",
    "WeeklySlot",
    "Weekday",
]
