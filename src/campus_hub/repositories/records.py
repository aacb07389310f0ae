"""JSON record encoding for stored entities.

Entities stay free of serialization logic; repositories that persist to
text (Redis) convert through these helpers.
"""

import json
from dataclasses import asdict
from datetime import date, datetime
from typing import Any

from campus_hub.entities import (
    Appointment,
    AppointmentStatus,
    Audience,
    AvailabilityStatus,
    Broadcast,
    DateOverride,
    Faculty,
    FacultyAvailability,
    Notification,
    NotificationKind,
    Role,
    User,
    WeeklySlot,
    Weekday,
)


def _default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def dumps(entity: Any) -> str:
    """Serialize a domain dataclass to a JSON string."""
    return json.dumps(asdict(entity), default=_default)


def _datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def user_from_json(raw: str) -> User:
    data = json.loads(raw)
    data["role"] = Role(data["role"])
    data["created_at"] = _datetime(data["created_at"])
    return User(**data)


def _availability(data: dict[str, Any]) -> FacultyAvailability:
    return FacultyAvailability(
        status=AvailabilityStatus(data["status"]),
        message=data.get("message"),
        updated_at=_datetime(data.get("updated_at")),
        date_overrides=tuple(
            DateOverride(
                date=date.fromisoformat(item["date"]),
                status=AvailabilityStatus(item["status"]),
                note=item.get("note"),
            )
            for item in data.get("date_overrides", [])
        ),
    )


def faculty_from_json(raw: str) -> Faculty:
    data = json.loads(raw)
    data["availability"] = _availability(data["availability"])
    data["weekly_schedule"] = tuple(
        WeeklySlot(
            id=slot["id"],
            day=Weekday(slot["day"]),
            start_time=slot["start_time"],
            end_time=slot["end_time"],
            location=slot.get("location"),
        )
        for slot in data.get("weekly_schedule", [])
    )
    return Faculty(**data)


def appointment_from_json(raw: str) -> Appointment:
    data = json.loads(raw)
    data["date"] = date.fromisoformat(data["date"])
    data["status"] = AppointmentStatus(data["status"])
    data["created_at"] = _datetime(data["created_at"])
    data["updated_at"] = _datetime(data["updated_at"])
    return Appointment(**data)


def broadcast_from_json(raw: str) -> Broadcast:
    data = json.loads(raw)
    data["audience"] = Audience(data["audience"])
    data["created_at"] = _datetime(data["created_at"])
    return Broadcast(**data)


def notification_from_json(raw: str) -> Notification:
    data = json.loads(raw)
    data["kind"] = NotificationKind(data["kind"])
    data["created_at"] = _datetime(data["created_at"])
    return Notification(**data)
