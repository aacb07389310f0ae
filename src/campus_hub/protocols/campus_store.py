"""Campus storage protocol.

Defines the interface for any backend that persists users, faculty
profiles, appointments, broadcasts and notifications.

Implementations:
- Redis (default, JSON records in hashes and sorted sets)
- In-memory (tests and local runs)
"""

from typing import Protocol, runtime_checkable

from campus_hub.entities import Appointment, Broadcast, Faculty, Notification, User


@runtime_checkable
class CampusStore(Protocol):
    """Protocol for campus storage backends.

    Any type that implements these methods satisfies the protocol, no
    explicit inheritance needed. Records are replaced wholesale on save;
    entities are immutable, so callers save a ``dataclasses.replace`` copy.
    """

    def save_user(self, user: User) -> None:
        """Insert or replace a user (and its email index entry)."""
        ...

    def get_user(self, user_id: str) -> User | None:
        """Fetch a user by id."""
        ...

    def get_user_by_email(self, email: str) -> User | None:
        """Fetch a user by (lower-cased) email."""
        ...

    def save_faculty(self, faculty: Faculty) -> None:
        """Insert or replace a faculty profile."""
        ...

    def get_faculty(self, faculty_id: str) -> Faculty | None:
        """Fetch a faculty profile by id."""
        ...

    def list_faculties(self) -> list[Faculty]:
        """All faculty profiles, ordered by name."""
        ...

    def save_appointment(self, appointment: Appointment) -> None:
        """Insert or replace an appointment."""
        ...

    def get_appointment(self, appointment_id: str) -> Appointment | None:
        """Fetch an appointment by id."""
        ...

    def list_appointments(self) -> list[Appointment]:
        """All appointments, oldest booking first."""
        ...

    def save_broadcast(self, broadcast: Broadcast) -> None:
        """Insert a broadcast."""
        ...

    def list_broadcasts(self, limit: int) -> list[Broadcast]:
        """Most recent broadcasts first, at most ``limit``."""
        ...

    def save_notification(self, notification: Notification) -> None:
        """Insert or replace a notification."""
        ...

    def get_notification(self, notification_id: str) -> Notification | None:
        """Fetch a notification by id."""
        ...

    def list_notifications(self, user_id: str) -> list[Notification]:
        """Notifications for one user, newest first."""
        ...

    def health_check(self) -> bool:
        """Check if the store is reachable.

        Returns:
            True if healthy, False otherwise
        """
        ...
