"""Service layer for business logic.

Services depend on protocols (CampusStore, Clock), not concrete
implementations, making them testable and flexible.

Architecture:
    GraphQL resolver -> Service -> Repository
    (API)            -> (Business) -> (Data Access)
"""

from .appointment_service import AppointmentService
from .auth_service import AuthService
from .broadcast_service import BroadcastService
from .container import CampusServices
from .faculty_service import FacultyService, SlotRequest
from .notification_service import NotificationService
from .pubsub import PubSub

__all__ = [
    "AppointmentService",
    "AuthService",
    "BroadcastService",
    "CampusServices",
    "FacultyService",
    "NotificationService",
    "PubSub",
    "SlotRequest",
]
