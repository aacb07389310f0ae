"""Appointment booking and status transitions."""

import uuid
from dataclasses import replace
from datetime import date
from zoneinfo import ZoneInfo

import structlog

from campus_hub.entities import (
    Appointment,
    AppointmentStatus,
    AvailabilityStatus,
    NotificationKind,
    Principal,
    Weekday,
)
from campus_hub.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from campus_hub.protocols import CampusStore, Clock, SystemClock

from . import time_slots
from .faculty_service import FacultyService
from .notification_service import NotificationService
from .pubsub import APPOINTMENT_TOPIC, PubSub

logger = structlog.get_logger(__name__)

# Statuses a faculty member may move an appointment into.
_FACULTY_RESPONSES = {
    AppointmentStatus.APPROVED,
    AppointmentStatus.REJECTED,
    AppointmentStatus.COMPLETED,
}


class AppointmentService:
    """Books appointments against faculty schedules and drives their status.

    Every change notifies the other party and is published on the
    appointment topic.
    """

    def __init__(
        self,
        store: CampusStore,
        pubsub: PubSub,
        faculties: FacultyService,
        notifications: NotificationService,
        clock: Clock | None = None,
        timezone: ZoneInfo | None = None,
    ) -> None:
        self._store = store
        self._pubsub = pubsub
        self._faculties = faculties
        self._notifications = notifications
        self._clock = clock or SystemClock()
        self._tz = timezone or ZoneInfo("UTC")

    def get(self, appointment_id: str) -> Appointment | None:
        return self._store.get_appointment(appointment_id)

    def list_for(self, principal: Principal) -> list[Appointment]:
        """Appointments visible to the caller, in meeting order."""
        appointments = [a for a in self._store.list_appointments() if self.visible_to(principal, a)]
        return sorted(appointments, key=lambda a: (a.date, a.start_time))

    def visible_to(self, principal: Principal, appointment: Appointment) -> bool:
        return principal.is_admin or principal.id in (appointment.student_id, appointment.faculty_id)

    def book(
        self,
        principal: Principal,
        faculty_id: str,
        day: date,
        start_time: str,
        end_time: str,
        purpose: str,
    ) -> Appointment:
        """Request an appointment with a faculty member.

        Raises:
            PermissionDeniedError: If the caller is not a student
            NotFoundError: If the faculty does not exist
            ValidationError: If the slot is malformed, in the past or outside office hours
            ConflictError: If the slot overlaps another open appointment
        """
        if not principal.is_student:
            raise PermissionDeniedError("Only students can book appointments")
        if not purpose.strip():
            raise ValidationError("Purpose is required")
        time_slots.validate_range(start_time, end_time)

        faculty = self._faculties.require_faculty(faculty_id)
        now = self._clock.now()
        if time_slots.to_utc(day, start_time, self._tz) <= now:
            raise ValidationError("Appointments must start in the future")

        override = faculty.availability.override_for(day)
        if override is not None and override.status is not AvailabilityStatus.AVAILABLE:
            raise ValidationError(f"{faculty.name} is not available on {day.isoformat()}")

        if faculty.weekly_schedule:
            weekday = Weekday.of(day)
            fits = any(
                slot.day is weekday and time_slots.contains(slot.start_time, slot.end_time, start_time, end_time)
                for slot in faculty.weekly_schedule
            )
            if not fits:
                raise ValidationError(f"{start_time}-{end_time} is outside {faculty.name}'s office hours")

        for other in self._store.list_appointments():
            if (
                other.faculty_id == faculty_id
                and other.date == day
                and other.status.is_open
                and time_slots.overlaps(other.start_time, other.end_time, start_time, end_time)
            ):
                raise ConflictError(f"{start_time}-{end_time} overlaps an existing appointment")

        appointment = Appointment(
            id=uuid.uuid4().hex,
            faculty_id=faculty_id,
            student_id=principal.id,
            date=day,
            start_time=start_time,
            end_time=end_time,
            purpose=purpose.strip(),
            status=AppointmentStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        self._store.save_appointment(appointment)
        self._notifications.notify(
            faculty_id,
            NotificationKind.APPOINTMENT_REQUESTED,
            "New appointment request",
            f"{day.isoformat()} {start_time}-{end_time}: {appointment.purpose}",
            appointment_id=appointment.id,
        )
        self._pubsub.publish(APPOINTMENT_TOPIC, appointment)
        logger.info("appointment_booked", appointment_id=appointment.id, faculty_id=faculty_id)
        return appointment

    def respond(
        self,
        principal: Principal,
        appointment_id: str,
        status: AppointmentStatus,
        note: str | None = None,
    ) -> Appointment:
        """Approve, reject or complete an appointment as its faculty member."""
        appointment = self._require(appointment_id)
        if principal.id != appointment.faculty_id:
            raise PermissionDeniedError("Only the appointment's faculty member can respond")
        if status not in _FACULTY_RESPONSES:
            raise ValidationError(f"Faculty cannot set status {status.value}")
        if status is AppointmentStatus.COMPLETED:
            if appointment.status is not AppointmentStatus.APPROVED:
                raise ValidationError("Only approved appointments can be completed")
        elif appointment.status is not AppointmentStatus.PENDING:
            raise ValidationError(f"Appointment is already {appointment.status.value}")

        return self._transition(appointment, status, note, notify=appointment.student_id)

    def cancel(self, principal: Principal, appointment_id: str) -> Appointment:
        """Cancel an open appointment as either participant."""
        appointment = self._require(appointment_id)
        if principal.id not in (appointment.student_id, appointment.faculty_id):
            raise PermissionDeniedError("Only participants can cancel an appointment")
        if not appointment.status.is_open:
            raise ValidationError(f"Appointment is already {appointment.status.value}")

        other = appointment.faculty_id if principal.id == appointment.student_id else appointment.student_id
        return self._transition(appointment, AppointmentStatus.CANCELLED, appointment.note, notify=other)

    def _require(self, appointment_id: str) -> Appointment:
        appointment = self._store.get_appointment(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment", appointment_id)
        return appointment

    def _transition(
        self,
        appointment: Appointment,
        status: AppointmentStatus,
        note: str | None,
        notify: str,
    ) -> Appointment:
        updated = replace(appointment, status=status, note=note, updated_at=self._clock.now())
        self._store.save_appointment(updated)
        self._notifications.notify(
            notify,
            NotificationKind.APPOINTMENT_UPDATED,
            f"Appointment {status.value.lower()}",
            f"{updated.date.isoformat()} {updated.start_time}-{updated.end_time}: {updated.purpose}",
            appointment_id=updated.id,
        )
        self._pubsub.publish(APPOINTMENT_TOPIC, updated)
        logger.info("appointment_status_changed", appointment_id=updated.id, status=status.value)
        return updated
