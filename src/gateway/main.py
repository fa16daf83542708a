"""Main FastAPI application entry point."""

from __future__ import annotations

import math
import signal
from contextlib import asynccontextmanager
from types import FrameType

import uvicorn
from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from graph.application.services import GraphQueryExecutor
from graph.dependencies import get_graph_query_executor, get_settings
from graph.presentation import realtime
from graph.presentation import routes as graph_routes
from graph.presentation.errors import client_message, timestamp
from graph.presentation.observability import DefaultTransportProbe
from graph.presentation.sessions import SessionRegistry
from infrastructure.database.connection_pool import ConnectionPool
from infrastructure.database.exceptions import DatabaseError
from infrastructure.lifecycle import LifecycleManager
from infrastructure.logging import configure_logging
from infrastructure.observability.probes import (
    DefaultLifecycleProbe,
    LifecycleProbe,
)
from infrastructure.settings import (
    DatabaseSettings,
    GatewaySettings,
    get_database_settings,
    get_gateway_settings,
)
from infrastructure.version import __version__
from shared_kernel.middleware.cors import allow_all_origins


_transport_probe = DefaultTransportProbe()


@asynccontextmanager
async def gateway_lifespan(app: FastAPI):
    """Application lifespan context.

    Manages:
    - Connection pool startup (initial connections opened eagerly)
    - Graceful shutdown: in-flight realtime queries, then pool drain
    """
    lifecycle: LifecycleManager = app.state.lifecycle
    await lifecycle.start()
    try:
        yield
    finally:
        await lifecycle.shutdown(reason="lifespan_shutdown")


async def invalid_request_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Answer malformed bodies with 400 instead of FastAPI's 422."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Invalid request",
            "message": "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in exc.errors()
            ),
            "timestamp": timestamp(),
        },
    )


def create_app(
    settings: GatewaySettings | None = None,
    database_settings: DatabaseSettings | None = None,
    pool: ConnectionPool | None = None,
) -> FastAPI:
    """Build the application and its service objects.

    The pool, executor, lifecycle manager and session registry are created
    once here and shared by both transports through app.state.

    Args:
        settings: Gateway settings, loaded from the environment if omitted.
        database_settings: Database settings, loaded from the environment if omitted.
        pool: Optional pre-built pool (tests inject one with a fake connect).
    """
    settings = settings or get_gateway_settings()
    pool = pool or ConnectionPool(database_settings or get_database_settings())

    app = FastAPI(
        title=settings.app_name,
        description="HTTP and WebSocket gateway for Cypher queries on Apache AGE",
        version=__version__,
        lifespan=gateway_lifespan,
    )
    app.state.settings = settings
    app.state.pool = pool
    app.state.executor = GraphQueryExecutor(pool)
    app.state.lifecycle = LifecycleManager(
        pool, shutdown_timeout=settings.shutdown_timeout_seconds
    )
    app.state.sessions = SessionRegistry()

    app.middleware("http")(allow_all_origins)
    app.add_exception_handler(RequestValidationError, invalid_request_handler)

    app.include_router(graph_routes.router)
    app.include_router(realtime.router)
    app.add_api_route("/health", health, methods=["GET"])
    app.add_api_route("/health/db", health_db, methods=["GET"])

    return app


async def health() -> dict:
    """Basic liveness check, no backend access."""
    return {"status": "ok", "timestamp": timestamp(), "version": __version__}


async def health_db(
    executor: GraphQueryExecutor = Depends(get_graph_query_executor),
    settings: GatewaySettings = Depends(get_settings),
) -> JSONResponse:
    """Check database connectivity through the pool."""
    try:
        await executor.check_connectivity()
    except Exception as e:
        if not isinstance(e, DatabaseError):
            _transport_probe.unexpected_error("http", e)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "status": "error",
                "database": "disconnected",
                "error": client_message(e, settings.expose_error_details),
                "timestamp": timestamp(),
            },
        )

    return JSONResponse(
        content={"status": "ok", "database": "connected", "timestamp": timestamp()}
    )


class GatewayServer(uvicorn.Server):
    """uvicorn server whose termination signals start shutdown exactly once.

    A repeated SIGINT/SIGTERM is logged and otherwise ignored rather than
    forcing an exit that would skip draining the pool.
    """

    def __init__(self, config: uvicorn.Config, probe: LifecycleProbe | None = None):
        super().__init__(config)
        self._probe = probe or DefaultLifecycleProbe()

    def handle_exit(self, sig: int, frame: FrameType | None) -> None:
        repeated = self.should_exit
        self._probe.signal_received(signal.Signals(sig).name, repeated=repeated)
        if not repeated:
            self.should_exit = True


app = create_app()


def run() -> None:
    """Run the gateway until a termination signal is received."""
    settings = get_gateway_settings()
    configure_logging(settings.log_level)
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
        timeout_graceful_shutdown=math.ceil(settings.shutdown_timeout_seconds),
    )
    GatewayServer(config).run()


if __name__ == "__main__":
    run()
