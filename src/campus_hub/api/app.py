"""FastAPI application: health probes plus the GraphQL endpoint.

GraphQL is served at ``/graphql`` over HTTP POST and over WebSocket with
either the ``graphql-ws`` or the ``graphql-transport-ws`` subprotocol.
"""

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from strawberry.fastapi import GraphQLRouter
from strawberry.subscriptions import GRAPHQL_TRANSPORT_WS_PROTOCOL, GRAPHQL_WS_PROTOCOL

from campus_hub.config import Settings, get_settings
from campus_hub.dto import HealthCheckResponse, ReadinessResponse, RootResponse
from campus_hub.graphql import get_context, schema
from campus_hub.log_config import configure_logging
from campus_hub.protocols import CampusStore, Clock

from .dependencies import HandlerDep, build_lifespan


def create_app(
    settings: Settings | None = None,
    store: CampusStore | None = None,
    clock: Clock | None = None,
    schedule_notifications: bool = True,
) -> FastAPI:
    """Build the API application.

    Args:
        settings: Application settings. Defaults to the environment.
        store: Campus store override (tests pass an in-memory store).
        clock: Time source override.
        schedule_notifications: Start the recurring notification check.

    Returns:
        Configured FastAPI app
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Campus Hub API",
        description="Faculty availability, appointments and announcements over GraphQL",
        version="0.1.0",
        lifespan=build_lifespan(settings, store, clock, schedule_notifications),
    )

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", response_model=RootResponse)
    async def root(handler: HandlerDep) -> RootResponse:
        """Root endpoint for platform and browser checks."""
        return await handler.root()

    @app.get("/api/health", response_model=HealthCheckResponse)
    async def health(handler: HandlerDep) -> HealthCheckResponse:
        """Health check endpoint for monitoring."""
        return await handler.health()

    @app.get("/api/ready", response_model=ReadinessResponse)
    async def ready(handler: HandlerDep) -> ReadinessResponse:
        """Readiness endpoint: also probes the store."""
        return await handler.ready()

    graphql_router = GraphQLRouter(
        schema,
        context_getter=get_context,
        subscription_protocols=(GRAPHQL_WS_PROTOCOL, GRAPHQL_TRANSPORT_WS_PROTOCOL),
    )
    app.include_router(graphql_router, prefix="/graphql")

    return app


app = create_app()


def main() -> None:
    """Run the API with uvicorn."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json or settings.is_production)
    uvicorn.run(
        "campus_hub.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )


if __name__ == "__main__":
    main()
