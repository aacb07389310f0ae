"""Campus Hub - faculty availability, appointments and broadcasts over GraphQL.

This package provides a layered GraphQL backend and a typed client for it:

Layers:
    - protocols: Interface contracts (CampusStore, Clock)
    - repositories: Data access implementations (Redis, in-memory)
    - services: Business logic
    - graphql: Schema, resolvers and request context
    - handlers: Plain HTTP endpoint handlers (health, readiness)
    - dto: Data transfer objects for the plain HTTP endpoints
    - entities: Domain models (internal)
    - client: Link pipeline, normalized cache and subscription socket

Usage:
    ```python
    from campus_hub.client import create_client

    client = create_client()
    result = await client.query("{ faculties { id name } }")
    ```

For the HTTP API:
    ```python
    from campus_hub.api.app import app
    ```
"""

from campus_hub.config import Settings, get_redis_client, get_settings
from campus_hub.errors import (
    AuthenticationError,
    CampusError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    StoreUnavailableError,
    ValidationError,
)
from campus_hub.protocols import CampusStore, Clock
from campus_hub.repositories import InMemoryCampusRepository, RedisCampusRepository, create_store
from campus_hub.services import CampusServices

__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    "get_redis_client",
    # Protocols (interfaces)
    "CampusStore",
    "Clock",
    # Services (business logic)
    "CampusServices",
    # Repositories (data access)
    "InMemoryCampusRepository",
    "RedisCampusRepository",
    "create_store",
    # Errors
    "CampusError",
    "AuthenticationError",
    "PermissionDeniedError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "StoreUnavailableError",
]
