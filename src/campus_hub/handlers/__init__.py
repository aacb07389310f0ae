"""Handler layer for plain HTTP endpoints.

Architecture:
    Handler -> Service/Repository
    (HTTP)  -> (Business / Data Access)
"""

from .health_handler import HealthHandler

__all__ = [
    "HealthHandler",
]
