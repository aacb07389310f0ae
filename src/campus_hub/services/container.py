"""Explicitly constructed service graph.

One CampusServices instance is built per application in the lifespan and
stored on ``app.state``; nothing here is a module-level singleton.
"""

from dataclasses import dataclass
from datetime import timedelta
from zoneinfo import ZoneInfo

from campus_hub.config import Settings
from campus_hub.protocols import CampusStore, Clock, SystemClock

from .appointment_service import AppointmentService
from .auth_service import AuthService
from .broadcast_service import BroadcastService
from .faculty_service import FacultyService
from .notification_service import NotificationService
from .pubsub import PubSub


@dataclass(frozen=True)
class CampusServices:
    store: CampusStore
    pubsub: PubSub
    clock: Clock
    auth: AuthService
    faculties: FacultyService
    appointments: AppointmentService
    broadcasts: BroadcastService
    notifications: NotificationService

    @classmethod
    def create(
        cls,
        settings: Settings,
        store: CampusStore,
        clock: Clock | None = None,
        pubsub: PubSub | None = None,
    ) -> "CampusServices":
        """Wire every service around one store, bus and clock.

        Args:
            settings: Application settings
            store: Campus storage backend (required)
            clock: Time source. Defaults to the system clock.
            pubsub: Subscription bus. Defaults to a fresh in-process bus.

        Returns:
            Fully wired CampusServices
        """
        clock = clock or SystemClock()
        pubsub = pubsub or PubSub()
        tz = ZoneInfo(settings.campus_timezone)

        faculties = FacultyService(store, pubsub, clock)
        notifications = NotificationService(
            store,
            pubsub,
            clock,
            timezone=tz,
            reminder_lead=timedelta(minutes=settings.reminder_lead_minutes),
        )
        return cls(
            store=store,
            pubsub=pubsub,
            clock=clock,
            auth=AuthService.create(store, settings, clock),
            faculties=faculties,
            appointments=AppointmentService(store, pubsub, faculties, notifications, clock, timezone=tz),
            broadcasts=BroadcastService(store, pubsub, clock),
            notifications=notifications,
        )
