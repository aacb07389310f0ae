"""GraphQL object and input types.

Object types are built from domain entities with ``from_entity``; nested
records (an appointment's faculty, a broadcast's author) resolve lazily
through the services on the context.
"""

from datetime import date, datetime

import strawberry
from strawberry.types import Info

from campus_hub import entities

from .context import get_services

Role = strawberry.enum(entities.Role, description="Account role")
AvailabilityStatus = strawberry.enum(entities.AvailabilityStatus)
Weekday = strawberry.enum(entities.Weekday)
AppointmentStatus = strawberry.enum(entities.AppointmentStatus)
Audience = strawberry.enum(entities.Audience)
NotificationKind = strawberry.enum(entities.NotificationKind)


@strawberry.type
class User:
    id: strawberry.ID
    name: str
    email: str
    role: Role
    department: str | None
    enrollment_no: str | None
    designation: str | None
    image: str | None

    @classmethod
    def from_entity(cls, user: entities.User) -> "User":
        return cls(
            id=strawberry.ID(user.id),
            name=user.name,
            email=user.email,
            role=user.role,
            department=user.department,
            enrollment_no=user.enrollment_no,
            designation=user.designation,
            image=user.image,
        )


@strawberry.type(description="Embedded in FacultyAvailability; has no identity of its own")
class DateOverride:
    date: date
    status: AvailabilityStatus
    note: str | None


@strawberry.type(description="Embedded in Faculty; has no identity of its own")
class FacultyAvailability:
    status: AvailabilityStatus
    message: str | None
    updated_at: datetime | None
    date_overrides: list[DateOverride]


@strawberry.type
class WeeklySchedule:
    id: strawberry.ID
    day: Weekday
    start_time: str
    end_time: str
    location: str | None


@strawberry.type
class Faculty:
    id: strawberry.ID
    name: str
    email: str
    department: str | None
    designation: str | None
    image: str | None
    availability: FacultyAvailability
    weekly_schedule: list[WeeklySchedule]

    @classmethod
    def from_entity(cls, faculty: entities.Faculty) -> "Faculty":
        availability = faculty.availability
        return cls(
            id=strawberry.ID(faculty.id),
            name=faculty.name,
            email=faculty.email,
            department=faculty.department,
            designation=faculty.designation,
            image=faculty.image,
            availability=FacultyAvailability(
                status=availability.status,
                message=availability.message,
                updated_at=availability.updated_at,
                date_overrides=[
                    DateOverride(date=o.date, status=o.status, note=o.note)
                    for o in availability.date_overrides
                ],
            ),
            weekly_schedule=[
                WeeklySchedule(
                    id=strawberry.ID(slot.id),
                    day=slot.day,
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                    location=slot.location,
                )
                for slot in faculty.weekly_schedule
            ],
        )


@strawberry.type
class Appointment:
    id: strawberry.ID
    date: date
    start_time: str
    end_time: str
    purpose: str
    status: AppointmentStatus
    note: str | None
    created_at: datetime
    updated_at: datetime
    faculty_id: strawberry.Private[str]
    student_id: strawberry.Private[str]

    @strawberry.field
    def faculty(self, info: Info) -> Faculty | None:
        faculty = get_services(info).faculties.get_faculty(self.faculty_id)
        return Faculty.from_entity(faculty) if faculty else None

    @strawberry.field
    def student(self, info: Info) -> User | None:
        user = get_services(info).auth.get_user(self.student_id)
        return User.from_entity(user) if user else None

    @classmethod
    def from_entity(cls, appointment: entities.Appointment) -> "Appointment":
        return cls(
            id=strawberry.ID(appointment.id),
            date=appointment.date,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
            purpose=appointment.purpose,
            status=appointment.status,
            note=appointment.note,
            created_at=appointment.created_at,
            updated_at=appointment.updated_at,
            faculty_id=appointment.faculty_id,
            student_id=appointment.student_id,
        )


@strawberry.type
class Broadcast:
    id: strawberry.ID
    title: str
    message: str
    audience: Audience
    created_at: datetime
    author_id: strawberry.Private[str]

    @strawberry.field
    def author(self, info: Info) -> User | None:
        user = get_services(info).auth.get_user(self.author_id)
        return User.from_entity(user) if user else None

    @classmethod
    def from_entity(cls, broadcast: entities.Broadcast) -> "Broadcast":
        return cls(
            id=strawberry.ID(broadcast.id),
            title=broadcast.title,
            message=broadcast.message,
            audience=broadcast.audience,
            created_at=broadcast.created_at,
            author_id=broadcast.author_id,
        )


@strawberry.type
class Notification:
    id: strawberry.ID
    kind: NotificationKind
    title: str
    body: str
    read: bool
    created_at: datetime
    appointment_id: strawberry.ID | None

    @classmethod
    def from_entity(cls, notification: entities.Notification) -> "Notification":
        return cls(
            id=strawberry.ID(notification.id),
            kind=notification.kind,
            title=notification.title,
            body=notification.body,
            read=notification.read,
            created_at=notification.created_at,
            appointment_id=strawberry.ID(notification.appointment_id) if notification.appointment_id else None,
        )


@strawberry.type
class AuthPayload:
    token: str
    user: User


@strawberry.input
class RegisterInput:
    name: str
    email: str
    password: str
    role: Role = entities.Role.STUDENT
    department: str | None = None
    enrollment_no: str | None = None
    designation: str | None = None


@strawberry.input
class AvailabilityInput:
    status: AvailabilityStatus
    message: str | None = None


@strawberry.input
class WeeklyScheduleInput:
    day: Weekday
    start_time: str
    end_time: str
    location: str | None = None


@strawberry.input
class DateOverrideInput:
    date: date
    status: AvailabilityStatus
    note: str | None = None


@strawberry.input
class BookAppointmentInput:
    faculty_id: strawberry.ID
    date: date
    start_time: str
    end_time: str
    purpose: str


@strawberry.input
class BroadcastInput:
    title: str
    message: str
    audience: Audience = entities.Audience.ALL
