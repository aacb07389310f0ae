"""Client-side result and error types.

Field-level errors travel inside ExecutionResult next to whatever data
resolved. Transport failures are exceptions (NetworkError for HTTP,
TransportError for the socket) that the client facade attaches to the
result instead of raising.
"""

from dataclasses import dataclass, field
from typing import Any


class NetworkError(Exception):
    """An HTTP operation failed before a GraphQL response was received."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransportError(Exception):
    """The subscription socket failed and could not be re-established."""


@dataclass(frozen=True)
class GraphQLErrorEntry:
    """One entry of a response's ``errors`` list."""

    message: str
    path: tuple[str | int, ...] | None = None
    locations: tuple[dict[str, int], ...] | None = None
    extensions: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GraphQLErrorEntry":
        path = data.get("path")
        locations = data.get("locations")
        return cls(
            message=str(data.get("message", "Unknown error")),
            path=tuple(path) if path is not None else None,
            locations=tuple(locations) if locations is not None else None,
            extensions=data.get("extensions"),
        )


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one operation (or one subscription payload).

    Attributes:
        data: Response data, possibly partial, or None
        errors: Field-level errors delivered alongside the data
        extensions: Response extensions, if any
        network_error: Transport failure, if the operation never completed
        from_cache: Whether the data was served from the local cache
    """

    data: dict[str, Any] | None = None
    errors: tuple[GraphQLErrorEntry, ...] = ()
    extensions: dict[str, Any] | None = None
    network_error: Exception | None = None
    from_cache: bool = False

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ExecutionResult":
        """Build a result from a ``{"data", "errors", "extensions"}`` payload."""
        errors = payload.get("errors") or ()
        if isinstance(errors, dict):
            errors = (errors,)
        return cls(
            data=payload.get("data"),
            errors=tuple(GraphQLErrorEntry.from_dict(e) for e in errors),
            extensions=payload.get("extensions"),
        )

    @property
    def has_errors(self) -> bool:
        return bool(self.errors) or self.network_error is not None

    @property
    def error_messages(self) -> list[str]:
        messages = [e.message for e in self.errors]
        if self.network_error is not None:
            messages.append(str(self.network_error))
        return messages
