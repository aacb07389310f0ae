"""In-memory implementation of CampusStore.

Used by the test-suite and by local runs with ``STORE_BACKEND=memory``.
Entities are frozen dataclasses, so storing the instances themselves is safe.
"""

from campus_hub.entities import Appointment, Broadcast, Faculty, Notification, User


class InMemoryCampusRepository:
    """Dictionary-backed campus store. Satisfies the CampusStore protocol."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._emails: dict[str, str] = {}
        self._faculties: dict[str, Faculty] = {}
        self._appointments: dict[str, Appointment] = {}
        self._broadcasts: dict[str, Broadcast] = {}
        self._notifications: dict[str, Notification] = {}

    def save_user(self, user: User) -> None:
        self._users[user.id] = user
        self._emails[user.email.lower()] = user.id

    def get_user(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    def get_user_by_email(self, email: str) -> User | None:
        user_id = self._emails.get(email.lower())
        return self._users.get(user_id) if user_id else None

    def save_faculty(self, faculty: Faculty) -> None:
        self._faculties[faculty.id] = faculty

    def get_faculty(self, faculty_id: str) -> Faculty | None:
        return self._faculties.get(faculty_id)

    def list_faculties(self) -> list[Faculty]:
        return sorted(self._faculties.values(), key=lambda f: (f.name.lower(), f.id))

    def save_appointment(self, appointment: Appointment) -> None:
        self._appointments[appointment.id] = appointment

    def get_appointment(self, appointment_id: str) -> Appointment | None:
        return self._appointments.get(appointment_id)

    def list_appointments(self) -> list[Appointment]:
        return sorted(self._appointments.values(), key=lambda a: a.created_at)

    def save_broadcast(self, broadcast: Broadcast) -> None:
        self._broadcasts[broadcast.id] = broadcast

    def list_broadcasts(self, limit: int) -> list[Broadcast]:
        newest = sorted(self._broadcasts.values(), key=lambda b: b.created_at, reverse=True)
        return newest[: max(limit, 0)]

    def save_notification(self, notification: Notification) -> None:
        self._notifications[notification.id] = notification

    def get_notification(self, notification_id: str) -> Notification | None:
        return self._notifications.get(notification_id)

    def list_notifications(self, user_id: str) -> list[Notification]:
        mine = [n for n in self._notifications.values() if n.user_id == user_id]
        return sorted(mine, key=lambda n: n.created_at, reverse=True)

    def health_check(self) -> bool:
        return True
