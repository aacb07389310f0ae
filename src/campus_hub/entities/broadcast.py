"""Broadcast announcement domain entity."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Audience(str, Enum):
    ALL = "ALL"
    STUDENTS = "STUDENTS"
    FACULTY = "FACULTY"


@dataclass(frozen=True)
class Broadcast:
    """An announcement sent to an audience."""

    id: str
    author_id: str
    title: str
    message: str
    audience: Audience
    created_at: datetime
