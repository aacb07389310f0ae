"""User and principal domain entities."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    STUDENT = "STUDENT"
    FACULTY = "FACULTY"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class User:
    """Domain entity for a registered campus account.

    Attributes:
        id: Opaque identifier
        name: Display name
        email: Unique login email (stored lower-cased)
        role: Account role
        password_hash: bcrypt hash of the password
        created_at: Registration time (UTC)
        department: Optional department name
        enrollment_no: Student enrollment number, if any
        designation: Faculty designation, if any
        image: Avatar URL, if any
    """

    id: str
    name: str
    email: str
    role: Role
    password_hash: str
    created_at: datetime
    department: str | None = None
    enrollment_no: str | None = None
    designation: str | None = None
    image: str | None = None


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, decoded from a bearer token."""

    id: str
    email: str
    role: Role

    @property
    def is_faculty(self) -> bool:
        return self.role is Role.FACULTY

    @property
    def is_student(self) -> bool:
        return self.role is Role.STUDENT

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN
