"""Unit test fixtures with fake asyncpg connections."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr

from infrastructure.database.connection_pool import ConnectionPool
from infrastructure.settings import DatabaseSettings, GatewaySettings

VERTEX_ALICE = (
    '{"id": 844424930131969, "label": "Person", '
    '"properties": {"name": "Alice Smith", "role": "Engineer"}}::vertex'
)
VERTEX_BOB = (
    '{"id": 844424930131970, "label": "Person", '
    '"properties": {"name": "Bob Jones", "role": "Manager"}}::vertex'
)


class FakeConnection:
    """Stand-in for asyncpg.Connection.

    Reads rows and errors from its connector at call time so a test can
    change them after the pool opened the connection.
    """

    def __init__(self, connector: FakeConnector):
        self._connector = connector
        self.executed: list[str] = []
        self.codecs: list[tuple[str, dict[str, Any]]] = []
        self.fetch_calls: list[tuple[str, tuple[Any, ...]]] = []
        self.closed = False
        self.terminated = False

    async def execute(self, sql: str) -> str:
        if self._connector.setup_error is not None:
            raise self._connector.setup_error
        self.executed.append(sql)
        return "OK"

    async def set_type_codec(self, typename: str, **kwargs: Any) -> None:
        self.codecs.append((typename, kwargs))

    async def fetch(self, sql: str, *args: Any) -> list[tuple[Any, ...]]:
        self.fetch_calls.append((sql, args))
        if self._connector.before_fetch is not None:
            await self._connector.before_fetch(sql, args)
        if self._connector.fetch_error is not None:
            raise self._connector.fetch_error
        return [(value,) for value in self._connector.rows]

    async def fetchval(self, sql: str) -> Any:
        self.fetch_calls.append((sql, ()))
        if self._connector.fetch_error is not None:
            raise self._connector.fetch_error
        return 1

    async def close(self, timeout: float | None = None) -> None:
        self.closed = True

    def terminate(self) -> None:
        self.closed = True
        self.terminated = True

    def is_closed(self) -> bool:
        return self.closed


class FakeConnector:
    """Connection factory handed to ConnectionPool(connect=...)."""

    def __init__(self) -> None:
        self.connections: list[FakeConnection] = []
        self.rows: list[Any] = []
        self.connect_error: Exception | None = None
        self.setup_error: Exception | None = None
        self.fetch_error: Exception | None = None
        # Awaited by fetch() before it answers, to hold a query in flight.
        self.before_fetch: Callable[[str, tuple[Any, ...]], Awaitable[None]] | None = None

    async def __call__(self) -> FakeConnection:
        if self.connect_error is not None:
            raise self.connect_error
        conn = FakeConnection(self)
        self.connections.append(conn)
        return conn

    @property
    def fetch_calls(self) -> list[tuple[str, tuple[Any, ...]]]:
        return [call for conn in self.connections for call in conn.fetch_calls]


@pytest.fixture
def db_settings() -> DatabaseSettings:
    """Provide test database settings."""
    return DatabaseSettings(
        host="testhost",
        port=5432,
        name="testdb",
        user="testuser",
        password=SecretStr("testpass"),
        pool_min_connections=1,
        pool_max_connections=2,
        pool_acquire_timeout_seconds=0.2,
    )


@pytest.fixture
def gateway_settings() -> GatewaySettings:
    """Provide test gateway settings."""
    return GatewaySettings(
        people_graph="company",
        expose_error_details=False,
        shutdown_timeout_seconds=1.0,
    )


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def pool(db_settings: DatabaseSettings, connector: FakeConnector) -> ConnectionPool:
    """Provide a pool whose connections are fakes."""
    return ConnectionPool(db_settings, connect=connector)


@pytest.fixture
def app(gateway_settings: GatewaySettings, pool: ConnectionPool) -> FastAPI:
    """Provide an application wired to the fake pool."""
    from main import create_app

    return create_app(settings=gateway_settings, pool=pool)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Run the application lifespan and yield an HTTP client for it."""
    async with LifespanManager(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
