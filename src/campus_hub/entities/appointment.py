"""Appointment domain entity."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class AppointmentStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"

    @property
    def is_open(self) -> bool:
        """Open appointments still occupy the faculty's time."""
        return self in (AppointmentStatus.PENDING, AppointmentStatus.APPROVED)


@dataclass(frozen=True)
class Appointment:
    """Domain entity for a student-faculty appointment.

    Attributes:
        id: Opaque identifier
        faculty_id: Faculty being met
        student_id: Student who booked
        date: Calendar date of the meeting (campus local time)
        start_time: "HH:MM" start, campus local time
        end_time: "HH:MM" end, campus local time
        purpose: Free-text reason
        status: Lifecycle status
        created_at: Booking time (UTC)
        updated_at: Last status change (UTC)
        note: Optional response note from the faculty
        reminder_sent: Whether the upcoming-meeting reminder went out
    """

    id: str
    faculty_id: str
    student_id: str
    date: date
    start_time: str
    end_time: str
    purpose: str
    status: AppointmentStatus
    created_at: datetime
    updated_at: datetime
    note: str | None = None
    reminder_sent: bool = False
