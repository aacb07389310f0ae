"""Data Transfer Objects for the plain HTTP endpoints.

GraphQL operations have their own types in the graphql package; these
Pydantic models only describe the health and liveness routes.
"""

from .responses import HealthCheckResponse, ReadinessResponse, RootResponse

__all__ = [
    "HealthCheckResponse",
    "ReadinessResponse",
    "RootResponse",
]
