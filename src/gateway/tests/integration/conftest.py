"""Integration test fixtures for database tests.

These fixtures require a running PostgreSQL instance with the AGE extension,
configured through the usual DB_* variables.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from pydantic import SecretStr

from infrastructure.database.connection_pool import ConnectionPool
from infrastructure.settings import DatabaseSettings

TEST_GRAPH = os.getenv("GATEWAY_TEST_GRAPH", "gateway_test")

PEOPLE = (
    ("Alice Smith", "Engineer"),
    ("Bob Jones", "Manager"),
    ("Alicia Keys", "Designer"),
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires database)",
    )


@pytest.fixture(scope="session")
def integration_db_settings() -> DatabaseSettings:
    """Database settings for integration tests.

    Override with environment variables:
        DB_HOST, DB_PORT, DB_NAME, DB_USER, DB_PASS
    """
    return DatabaseSettings(
        host=os.getenv("DB_HOST", "localhost"),
        port=int(os.getenv("DB_PORT", "5432")),
        name=os.getenv("DB_NAME", "postgres"),
        user=os.getenv("DB_USER", "postgres"),
        password=SecretStr(os.getenv("DB_PASS", "agenspw")),
        pool_min_connections=1,
        pool_max_connections=3,
        pool_acquire_timeout_seconds=5.0,
    )


@pytest_asyncio.fixture
async def pool(integration_db_settings: DatabaseSettings) -> AsyncIterator[ConnectionPool]:
    """Provide an opened pool, drained after each test."""
    pool = ConnectionPool(integration_db_settings)
    await pool.open()
    yield pool
    await pool.drain(timeout=5.0)


@pytest_asyncio.fixture
async def people_graph(pool: ConnectionPool) -> AsyncIterator[str]:
    """Create the test graph with a few Person vertices, dropped afterwards."""
    async with pool.lease() as handle:
        conn = handle.connection
        exists = await conn.fetchval(
            "SELECT count(*) FROM ag_catalog.ag_graph WHERE name = $1", TEST_GRAPH
        )
        if exists:
            await conn.execute(f"SELECT drop_graph('{TEST_GRAPH}', true)")
        await conn.execute(f"SELECT create_graph('{TEST_GRAPH}')")
        for name, role in PEOPLE:
            await conn.execute(
                f"SELECT * FROM cypher('{TEST_GRAPH}', $$ "
                f"CREATE (:Person {{name: '{name}', role: '{role}'}}) "
                f"$$) AS (r agtype)"
            )

    yield TEST_GRAPH

    async with pool.lease() as handle:
        await handle.connection.execute(f"SELECT drop_graph('{TEST_GRAPH}', true)")
