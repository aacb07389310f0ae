"""GraphQL API layer (strawberry).

Resolvers stay thin: they decode the principal from the context, delegate
to the services and convert entities to GraphQL types.
"""

from .context import get_context, get_principal, get_services
from .schema import schema

__all__ = [
    "get_context",
    "get_principal",
    "get_services",
    "schema",
]
