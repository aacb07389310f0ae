"""Repository layer for data access.

This layer abstracts the backing store behind the CampusStore protocol.
The repositories are protocol-based (structural typing), not
inheritance-based: any class implementing the required methods will
satisfy the protocol.
"""

from campus_hub.config import Settings
from campus_hub.protocols import CampusStore

from .memory_repository import InMemoryCampusRepository
from .redis_repository import RedisCampusRepository


def create_store(settings: Settings) -> CampusStore:
    """Build the store selected by ``STORE_BACKEND``."""
    if settings.store_backend == "memory":
        return InMemoryCampusRepository()
    return RedisCampusRepository.create(settings)


__all__ = [
    "CampusStore",
    "InMemoryCampusRepository",
    "RedisCampusRepository",
    "create_store",
]
