"""Root Query, Mutation and Subscription types and the executable schema."""

from datetime import date
from typing import AsyncGenerator

import strawberry
from graphql import GraphQLError
from strawberry.types import ExecutionContext, Info

from campus_hub.errors import CampusError
from campus_hub.services import SlotRequest
from campus_hub.services.pubsub import (
    APPOINTMENT_TOPIC,
    AVAILABILITY_TOPIC,
    BROADCAST_TOPIC,
    NOTIFICATION_TOPIC,
)

from .context import get_principal, get_services, require_principal
from .permissions import IsAuthenticated
from .types import (
    Appointment,
    AppointmentStatus,
    AuthPayload,
    AvailabilityInput,
    BookAppointmentInput,
    Broadcast,
    BroadcastInput,
    DateOverrideInput,
    Faculty,
    Notification,
    RegisterInput,
    User,
    WeeklyScheduleInput,
)


@strawberry.type
class Query:
    @strawberry.field(permission_classes=[IsAuthenticated])
    def me(self, info: Info) -> User | None:
        user = get_services(info).auth.get_user(require_principal(info).id)
        return User.from_entity(user) if user else None

    @strawberry.field
    def faculties(self, info: Info, department: str | None = None) -> list[Faculty]:
        return [Faculty.from_entity(f) for f in get_services(info).faculties.list_faculties(department)]

    @strawberry.field
    def faculty(self, info: Info, id: strawberry.ID) -> Faculty | None:
        faculty = get_services(info).faculties.get_faculty(str(id))
        return Faculty.from_entity(faculty) if faculty else None

    @strawberry.field
    def broadcasts(self, info: Info, limit: int = 50) -> list[Broadcast]:
        services = get_services(info)
        return [Broadcast.from_entity(b) for b in services.broadcasts.list_for(get_principal(info), limit)]

    @strawberry.field(permission_classes=[IsAuthenticated])
    def my_appointments(self, info: Info) -> list[Appointment] | None:
        appointments = get_services(info).appointments.list_for(require_principal(info))
        return [Appointment.from_entity(a) for a in appointments]

    @strawberry.field(permission_classes=[IsAuthenticated])
    def my_notifications(self, info: Info, unread_only: bool = False) -> list[Notification] | None:
        notifications = get_services(info).notifications.list_for(require_principal(info), unread_only)
        return [Notification.from_entity(n) for n in notifications]


@strawberry.type
class Mutation:
    @strawberry.mutation
    def register(self, info: Info, input: RegisterInput) -> AuthPayload:
        token, user = get_services(info).auth.register(
            name=input.name,
            email=input.email,
            password=input.password,
            role=input.role,
            department=input.department,
            enrollment_no=input.enrollment_no,
            designation=input.designation,
        )
        return AuthPayload(token=token, user=User.from_entity(user))

    @strawberry.mutation
    def login(self, info: Info, email: str, password: str) -> AuthPayload:
        token, user = get_services(info).auth.login(email, password)
        return AuthPayload(token=token, user=User.from_entity(user))

    @strawberry.mutation
    def update_availability(self, info: Info, input: AvailabilityInput) -> Faculty:
        faculty = get_services(info).faculties.update_availability(
            require_principal(info), input.status, input.message
        )
        return Faculty.from_entity(faculty)

    @strawberry.mutation
    def set_weekly_schedule(self, info: Info, slots: list[WeeklyScheduleInput]) -> Faculty:
        requests = [SlotRequest(s.day, s.start_time, s.end_time, s.location) for s in slots]
        faculty = get_services(info).faculties.set_weekly_schedule(require_principal(info), requests)
        return Faculty.from_entity(faculty)

    @strawberry.mutation
    def add_date_override(self, info: Info, input: DateOverrideInput) -> Faculty:
        faculty = get_services(info).faculties.add_date_override(
            require_principal(info), input.date, input.status, input.note
        )
        return Faculty.from_entity(faculty)

    @strawberry.mutation
    def remove_date_override(self, info: Info, date: date) -> Faculty:
        faculty = get_services(info).faculties.remove_date_override(require_principal(info), date)
        return Faculty.from_entity(faculty)

    @strawberry.mutation
    def book_appointment(self, info: Info, input: BookAppointmentInput) -> Appointment:
        appointment = get_services(info).appointments.book(
            require_principal(info),
            faculty_id=str(input.faculty_id),
            day=input.date,
            start_time=input.start_time,
            end_time=input.end_time,
            purpose=input.purpose,
        )
        return Appointment.from_entity(appointment)

    @strawberry.mutation
    def respond_to_appointment(
        self,
        info: Info,
        id: strawberry.ID,
        status: AppointmentStatus,
        note: str | None = None,
    ) -> Appointment:
        appointment = get_services(info).appointments.respond(require_principal(info), str(id), status, note)
        return Appointment.from_entity(appointment)

    @strawberry.mutation
    def cancel_appointment(self, info: Info, id: strawberry.ID) -> Appointment:
        appointment = get_services(info).appointments.cancel(require_principal(info), str(id))
        return Appointment.from_entity(appointment)

    @strawberry.mutation
    def create_broadcast(self, info: Info, input: BroadcastInput) -> Broadcast:
        broadcast = get_services(info).broadcasts.create(
            require_principal(info), input.title, input.message, input.audience
        )
        return Broadcast.from_entity(broadcast)

    @strawberry.mutation
    def mark_notification_read(self, info: Info, id: strawberry.ID) -> Notification:
        notification = get_services(info).notifications.mark_read(require_principal(info), str(id))
        return Notification.from_entity(notification)


@strawberry.type
class Subscription:
    @strawberry.subscription
    async def availability_changed(
        self, info: Info, faculty_id: strawberry.ID | None = None
    ) -> AsyncGenerator[Faculty, None]:
        async for faculty in get_services(info).pubsub.subscribe(AVAILABILITY_TOPIC):
            if faculty_id is None or faculty.id == str(faculty_id):
                yield Faculty.from_entity(faculty)

    @strawberry.subscription
    async def broadcast_created(self, info: Info) -> AsyncGenerator[Broadcast, None]:
        services = get_services(info)
        principal = get_principal(info)
        async for broadcast in services.pubsub.subscribe(BROADCAST_TOPIC):
            if services.broadcasts.visible_to(principal, broadcast):
                yield Broadcast.from_entity(broadcast)

    @strawberry.subscription(permission_classes=[IsAuthenticated])
    async def appointment_updated(self, info: Info) -> AsyncGenerator[Appointment, None]:
        services = get_services(info)
        principal = require_principal(info)
        async for appointment in services.pubsub.subscribe(APPOINTMENT_TOPIC):
            if services.appointments.visible_to(principal, appointment):
                yield Appointment.from_entity(appointment)

    @strawberry.subscription(permission_classes=[IsAuthenticated])
    async def notification_received(self, info: Info) -> AsyncGenerator[Notification, None]:
        principal = require_principal(info)
        async for notification in get_services(info).pubsub.subscribe(NOTIFICATION_TOPIC):
            if notification.user_id == principal.id:
                yield Notification.from_entity(notification)


class CampusSchema(strawberry.Schema):
    """Schema that tags domain errors with a machine-readable code."""

    def process_errors(
        self,
        errors: list[GraphQLError],
        execution_context: ExecutionContext | None = None,
    ) -> None:
        for error in errors:
            original = error.original_error
            if isinstance(original, CampusError):
                error.extensions = {**(error.extensions or {}), "code": original.code}
        super().process_errors(errors, execution_context)


schema = CampusSchema(query=Query, mutation=Mutation, subscription=Subscription)
