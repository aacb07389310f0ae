"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import timedelta
from typing import Annotated

import structlog
from fastapi import Depends, FastAPI, Request

from campus_hub.config import Settings
from campus_hub.errors import StoreUnavailableError
from campus_hub.handlers import HealthHandler
from campus_hub.protocols import CampusStore, Clock
from campus_hub.repositories import create_store
from campus_hub.scheduling import PeriodicTask
from campus_hub.services import CampusServices

logger = structlog.get_logger(__name__)


def get_handler(request: Request) -> HealthHandler:
    """Dependency injection for HealthHandler from app.state."""
    handler = getattr(request.app.state, "health_handler", None)
    if handler is None:
        raise RuntimeError("HealthHandler not initialized. Check lifespan setup.")
    return handler


def build_lifespan(
    settings: Settings,
    store: CampusStore | None = None,
    clock: Clock | None = None,
    schedule_notifications: bool = True,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Create the lifespan context manager for one app instance.

    Args:
        settings: Application settings
        store: Campus store to use. If None, built from STORE_BACKEND.
        clock: Time source for services and the scheduler.
        schedule_notifications: Start the recurring notification check.

    Returns:
        A lifespan function for ``FastAPI(lifespan=...)``
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initializes all layers and stores them in app.state.

        1. Store (data access) - must answer a health check or startup aborts
        2. Services (business logic) - app.state.services
        3. Scheduler (notification check) - app.state.scheduler
        4. Handler (HTTP probes) - app.state.health_handler
        """
        campus_store = store or create_store(settings)
        if not campus_store.health_check():
            logger.error("store_unreachable", backend=settings.store_backend, redis_url=settings.redis_url)
            raise StoreUnavailableError(f"Could not reach the {settings.store_backend} store at startup")

        services = CampusServices.create(settings, campus_store, clock)

        scheduler = None
        if schedule_notifications:
            scheduler = PeriodicTask(
                "notification-check",
                timedelta(seconds=settings.notification_interval_seconds),
                services.notifications.check_and_notify,
                clock=services.clock,
            )
            scheduler.start()

        app.state.services = services
        app.state.scheduler = scheduler
        app.state.health_handler = HealthHandler(store=campus_store, scheduler=scheduler)

        logger.info(
            "campus_api_started",
            store_backend=settings.store_backend,
            environment=settings.environment,
            notification_interval_seconds=settings.notification_interval_seconds,
        )

        yield

        if scheduler is not None:
            await scheduler.stop()
        del app.state.health_handler
        del app.state.scheduler
        del app.state.services
        logger.info("campus_api_stopped")

    return lifespan


# Type aliases for cleaner dependency injection
HandlerDep = Annotated[HealthHandler, Depends(get_handler)]
