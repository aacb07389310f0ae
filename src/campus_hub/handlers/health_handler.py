"""HTTP handlers for liveness and readiness probes."""

from campus_hub.dto import HealthCheckResponse, ReadinessResponse, RootResponse
from campus_hub.protocols import CampusStore
from campus_hub.scheduling import PeriodicTask


class HealthHandler:
    """Handlers for the probe endpoints used by the hosting platform.

    ``/`` and ``/api/health`` return fixed payloads so they succeed as long
    as the process serves requests; ``/api/ready`` also checks dependencies.
    """

    ROOT_MESSAGE = "SmartCampus backend is running"

    def __init__(self, store: CampusStore, scheduler: PeriodicTask | None = None) -> None:
        """Initialize the health handler.

        Args:
            store: The campus store to probe for readiness.
            scheduler: The notification-check task, if scheduled.
        """
        self._store = store
        self._scheduler = scheduler

    async def root(self) -> RootResponse:
        """Handle GET / requests."""
        return RootResponse(message=self.ROOT_MESSAGE)

    async def health(self) -> HealthCheckResponse:
        """Handle GET /api/health requests."""
        return HealthCheckResponse(status="ok")

    async def ready(self) -> ReadinessResponse:
        """Handle GET /api/ready requests."""
        store_healthy = self._store.health_check()
        scheduler_running = self._scheduler is not None and self._scheduler.is_running
        return ReadinessResponse(
            status="ready" if store_healthy else "degraded",
            store_healthy=store_healthy,
            scheduler_running=scheduler_running,
        )
