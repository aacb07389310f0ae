"""Domain exceptions.

Services raise these; the GraphQL layer turns them into field-level errors
next to whatever sibling data still resolved.
"""


class CampusError(Exception):
    """Base class for all campus domain errors."""

    code = "CAMPUS_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthenticationError(CampusError):
    """Credentials missing, wrong or expired."""

    code = "UNAUTHENTICATED"


class PermissionDeniedError(CampusError):
    """The principal is known but not allowed to perform the action."""

    code = "FORBIDDEN"


class NotFoundError(CampusError):
    """Referenced record does not exist."""

    code = "NOT_FOUND"

    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__(f"{kind} {identifier} not found")
        self.kind = kind
        self.identifier = identifier


class ValidationError(CampusError):
    """Input is well-typed but violates a domain rule."""

    code = "BAD_USER_INPUT"


class ConflictError(CampusError):
    """Input collides with existing state (duplicate email, overlapping slot)."""

    code = "CONFLICT"


class StoreUnavailableError(CampusError):
    """The backing store could not be reached."""

    code = "STORE_UNAVAILABLE"
