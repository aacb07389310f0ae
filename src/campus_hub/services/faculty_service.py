"""Faculty availability, weekly schedules and date overrides."""

import uuid
from dataclasses import dataclass, replace
from datetime import date

import structlog

from campus_hub.entities import (
    AvailabilityStatus,
    DateOverride,
    Faculty,
    Principal,
    WeeklySlot,
    Weekday,
)
from campus_hub.errors import NotFoundError, PermissionDeniedError, ValidationError
from campus_hub.protocols import CampusStore, Clock, SystemClock

from . import time_slots
from .pubsub import AVAILABILITY_TOPIC, PubSub

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SlotRequest:
    """A weekly slot as submitted by the faculty member, before ids are assigned."""

    day: Weekday
    start_time: str
    end_time: str
    location: str | None = None


class FacultyService:
    """Reads faculty profiles and applies availability changes.

    Every change is saved and then published on the availability topic so
    subscribed clients can merge the new profile into their caches.
    """

    def __init__(self, store: CampusStore, pubsub: PubSub, clock: Clock | None = None) -> None:
        self._store = store
        self._pubsub = pubsub
        self._clock = clock or SystemClock()

    def list_faculties(self, department: str | None = None) -> list[Faculty]:
        faculties = self._store.list_faculties()
        if department:
            wanted = department.strip().lower()
            faculties = [f for f in faculties if (f.department or "").lower() == wanted]
        return faculties

    def get_faculty(self, faculty_id: str) -> Faculty | None:
        return self._store.get_faculty(faculty_id)

    def require_faculty(self, faculty_id: str) -> Faculty:
        faculty = self._store.get_faculty(faculty_id)
        if faculty is None:
            raise NotFoundError("Faculty", faculty_id)
        return faculty

    def update_availability(
        self,
        principal: Principal,
        status: AvailabilityStatus,
        message: str | None = None,
    ) -> Faculty:
        """Set the caller's current status; date overrides are kept."""
        faculty = self._own_profile(principal)
        availability = replace(
            faculty.availability,
            status=status,
            message=message,
            updated_at=self._clock.now(),
        )
        return self._save(replace(faculty, availability=availability))

    def set_weekly_schedule(self, principal: Principal, slots: list[SlotRequest]) -> Faculty:
        """Replace the caller's weekly schedule.

        Raises:
            ValidationError: If a slot is malformed or two slots overlap on one day
        """
        faculty = self._own_profile(principal)
        for slot in slots:
            time_slots.validate_range(slot.start_time, slot.end_time)
        for i, a in enumerate(slots):
            for b in slots[i + 1 :]:
                if a.day == b.day and time_slots.overlaps(
                    a.start_time, a.end_time, b.start_time, b.end_time
                ):
                    raise ValidationError(
                        f"Slots {a.start_time}-{a.end_time} and {b.start_time}-{b.end_time} "
                        f"overlap on {a.day.value}"
                    )

        schedule = tuple(
            WeeklySlot(
                id=uuid.uuid4().hex,
                day=slot.day,
                start_time=slot.start_time,
                end_time=slot.end_time,
                location=slot.location,
            )
            for slot in sorted(slots, key=lambda s: (list(Weekday).index(s.day), s.start_time))
        )
        return self._save(replace(faculty, weekly_schedule=schedule))

    def add_date_override(
        self,
        principal: Principal,
        day: date,
        status: AvailabilityStatus,
        note: str | None = None,
    ) -> Faculty:
        """Add or replace the override for ``day``."""
        faculty = self._own_profile(principal)
        if day < self._clock.now().date():
            raise ValidationError(f"Cannot override a past date ({day.isoformat()})")
        kept = tuple(o for o in faculty.availability.date_overrides if o.date != day)
        overrides = tuple(sorted((*kept, DateOverride(date=day, status=status, note=note)), key=lambda o: o.date))
        availability = replace(faculty.availability, date_overrides=overrides, updated_at=self._clock.now())
        return self._save(replace(faculty, availability=availability))

    def remove_date_override(self, principal: Principal, day: date) -> Faculty:
        faculty = self._own_profile(principal)
        overrides = tuple(o for o in faculty.availability.date_overrides if o.date != day)
        if len(overrides) == len(faculty.availability.date_overrides):
            raise NotFoundError("Date override", day.isoformat())
        availability = replace(faculty.availability, date_overrides=overrides, updated_at=self._clock.now())
        return self._save(replace(faculty, availability=availability))

    def _own_profile(self, principal: Principal) -> Faculty:
        if not principal.is_faculty:
            raise PermissionDeniedError("Only faculty members can change availability")
        return self.require_faculty(principal.id)

    def _save(self, faculty: Faculty) -> Faculty:
        self._store.save_faculty(faculty)
        delivered = self._pubsub.publish(AVAILABILITY_TOPIC, faculty)
        logger.info("faculty_updated", faculty_id=faculty.id, subscribers=delivered)
        return faculty
