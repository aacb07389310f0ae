"""Notification domain entity."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class NotificationKind(str, Enum):
    APPOINTMENT_REQUESTED = "APPOINTMENT_REQUESTED"
    APPOINTMENT_UPDATED = "APPOINTMENT_UPDATED"
    APPOINTMENT_REMINDER = "APPOINTMENT_REMINDER"
    BROADCAST = "BROADCAST"


@dataclass(frozen=True)
class Notification:
    """A message addressed to one user."""

    id: str
    user_id: str
    kind: NotificationKind
    title: str
    body: str
    created_at: datetime
    appointment_id: str | None = None
    read: bool = False
