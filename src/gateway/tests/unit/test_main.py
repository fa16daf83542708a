"""Unit tests for main FastAPI application configuration."""

from __future__ import annotations

import signal
from unittest.mock import MagicMock

import pytest
import uvicorn
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from graph.application.services import GraphQueryExecutor
from graph.presentation.sessions import SessionRegistry
from infrastructure.database.connection_pool import ConnectionPool
from infrastructure.lifecycle import LifecycleManager
from infrastructure.version import __version__
from tests.unit.conftest import FakeConnector


class TestCreateApp:
    """Tests for the application factory."""

    def test_shared_services_are_on_app_state(self, app: FastAPI, pool):
        assert app.state.pool is pool
        assert isinstance(app.state.executor, GraphQueryExecutor)
        assert isinstance(app.state.lifecycle, LifecycleManager)
        assert isinstance(app.state.sessions, SessionRegistry)

    def test_routes_are_registered(self, app: FastAPI):
        paths = {route.path for route in app.routes}

        assert {"/health", "/health/db", "/api/people", "/api/graph/query", "/ws"} <= paths


class TestLifespan:
    """Tests for startup and graceful shutdown."""

    @pytest.mark.asyncio
    async def test_startup_opens_and_shutdown_drains_pool(
        self, app: FastAPI, pool: ConnectionPool, connector: FakeConnector
    ):
        async with LifespanManager(app):
            assert len(connector.connections) == 1
            assert pool.stats().idle == 1

        assert pool.is_closing
        assert connector.connections[0].closed

    @pytest.mark.asyncio
    async def test_startup_survives_unreachable_database(
        self, app: FastAPI, connector: FakeConnector
    ):
        connector.connect_error = OSError("Connection refused")

        async with LifespanManager(app):
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                health = await client.get("/health")
                health_db = await client.get("/health/db")

        assert health.status_code == 200
        assert health_db.status_code == 500
        body = health_db.json()
        assert body["status"] == "error"
        assert body["database"] == "disconnected"
        assert body["error"] == "Database is unavailable"


class TestHealthRoutes:
    """Tests for /health and /health/db."""

    @pytest.mark.asyncio
    async def test_health_does_not_touch_database(
        self, client, connector: FakeConnector
    ):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["version"] == __version__
        assert "timestamp" in body
        assert connector.fetch_calls == []

    @pytest.mark.asyncio
    async def test_health_db_reports_connected(self, client, connector: FakeConnector):
        response = await client.get("/health/db")

        assert response.status_code == 200
        assert response.json()["database"] == "connected"
        assert connector.fetch_calls == [("SELECT 1", ())]

    @pytest.mark.asyncio
    async def test_health_db_reports_lost_connection(
        self, client, connector: FakeConnector
    ):
        connector.fetch_error = ConnectionResetError("connection reset by peer")

        response = await client.get("/health/db")

        assert response.status_code == 500
        assert response.json()["database"] == "disconnected"


class TestGatewayServer:
    """Tests for signal handling."""

    def test_repeated_signal_is_ignored(self, app: FastAPI):
        from main import GatewayServer

        probe = MagicMock()
        server = GatewayServer(uvicorn.Config(app), probe=probe)

        server.handle_exit(signal.SIGTERM, None)
        server.handle_exit(signal.SIGINT, None)

        assert server.should_exit is True
        assert server.force_exit is False
        probe.signal_received.assert_any_call("SIGTERM", repeated=False)
        probe.signal_received.assert_any_call("SIGINT", repeated=True)
