"""Connection pool for Apache AGE/PostgreSQL.

This module provides an asyncio connection pool over asyncpg connections.
Every physical connection is prepared for AGE before it is first leased.
"""

from __future__ import annotations

import asyncio
import itertools
from collections import deque
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import asyncpg

from infrastructure.database.exceptions import (
    DatabaseConnectionError,
    PoolExhausted,
)
from infrastructure.observability.probes import (
    ConnectionProbe,
    DefaultConnectionProbe,
)

if TYPE_CHECKING:
    from infrastructure.settings import DatabaseSettings

ConnectFunc = Callable[[], Awaitable[Any]]

# Errors raised by asyncpg while opening or preparing a connection.
CONNECT_ERRORS = (
    OSError,
    TimeoutError,
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
)

CLOSE_TIMEOUT_SECONDS = 5.0


@dataclass(eq=False)
class ConnectionHandle:
    """Exclusive lease on one physical connection.

    Attributes:
        id: Pool-unique identifier of the physical connection.
        connection: The underlying asyncpg connection.
    """

    id: int
    connection: Any


@dataclass(frozen=True)
class PoolStats:
    """Point-in-time view of the pool partition."""

    size: int
    idle: int
    leased: int
    max_size: int


class ConnectionPool:
    """Bounded asyncio connection pool for PostgreSQL/AGE.

    Physical connections are partitioned into an idle set and a leased set.
    Both sets, together with the count of physical connections, are only
    mutated while holding the pool condition, so a connection is never
    handed to two callers at once.

    Attributes:
        _settings: Database configuration settings
        _probe: Observability probe for monitoring
        _connect: Coroutine factory opening one physical connection
    """

    def __init__(
        self,
        settings: DatabaseSettings,
        probe: ConnectionProbe | None = None,
        connect: ConnectFunc | None = None,
    ):
        """Initialize the connection pool.

        No connection is opened until open() or the first acquire().

        Args:
            settings: Database connection settings
            probe: Optional observability probe
            connect: Optional connection factory, defaults to asyncpg.connect
        """
        self._settings = settings
        self._probe = probe or DefaultConnectionProbe()
        self._connect = connect or self._connect_asyncpg
        self._idle: deque[ConnectionHandle] = deque()
        self._leased: dict[int, ConnectionHandle] = {}
        # Physical connections, including those still being opened.
        self._size = 0
        self._ids = itertools.count(1)
        self._condition = asyncio.Condition()
        self._closing = False
        self._closed = False

    @property
    def max_size(self) -> int:
        return self._settings.pool_max_connections

    @property
    def is_closing(self) -> bool:
        return self._closing

    def stats(self) -> PoolStats:
        return PoolStats(
            size=self._size,
            idle=len(self._idle),
            leased=len(self._leased),
            max_size=self.max_size,
        )

    async def open(self) -> None:
        """Open the configured minimum number of connections.

        Raises:
            DatabaseConnectionError: If a connection cannot be established.
        """
        async with self._condition:
            self._ensure_open()
            missing = max(0, self._settings.pool_min_connections - self._size)
            self._size += missing

        opened: list[ConnectionHandle] = []
        try:
            for _ in range(missing):
                opened.append(await self._create_handle())
        finally:
            async with self._condition:
                self._size -= missing - len(opened)
                self._idle.extend(opened)
                self._condition.notify_all()

        self._probe.pool_opened(
            min_conn=self._settings.pool_min_connections,
            max_conn=self.max_size,
            dsn=self._settings.dsn,
        )

    async def acquire(self, timeout: float | None = None) -> ConnectionHandle:
        """Lease a connection, waiting for one to be released if necessary.

        Args:
            timeout: Wait limit in seconds, defaults to the configured
                pool_acquire_timeout_seconds.

        Returns:
            A handle the caller owns exclusively until release().

        Raises:
            PoolExhausted: If no connection is freed within the wait limit.
            DatabaseConnectionError: If the pool is closed or a new
                connection cannot be established.
        """
        wait_limit = (
            self._settings.pool_acquire_timeout_seconds if timeout is None else timeout
        )

        try:
            async with asyncio.timeout(wait_limit):
                async with self._condition:
                    await self._condition.wait_for(self._can_lease)
                    self._ensure_open()
                    if self._idle:
                        handle = self._idle.popleft()
                        self._leased[handle.id] = handle
                        self._probe.connection_acquired_from_pool(handle.id)
                        return handle
                    # Reserve a slot, the connection is opened outside the lock.
                    self._size += 1
        except TimeoutError:
            self._probe.pool_exhausted(timeout=wait_limit, max_conn=self.max_size)
            raise PoolExhausted(
                f"No connection available within {wait_limit}s "
                f"(max {self.max_size} connections)",
                timeout=wait_limit,
            ) from None

        try:
            handle = await self._create_handle()
        except BaseException:
            async with self._condition:
                self._size -= 1
                self._condition.notify_all()
            raise

        try:
            async with self._condition:
                if not self._closing:
                    self._leased[handle.id] = handle
                    self._probe.connection_acquired_from_pool(handle.id)
                    return handle
                self._size -= 1
        except BaseException:
            # Cancelled before the new connection was recorded as leased.
            handle.connection.terminate()
            async with self._condition:
                self._size -= 1
                self._condition.notify_all()
            raise

        await self._close_connection(handle, reason="pool_closing")
        raise DatabaseConnectionError("Connection pool is closed")

    async def release(self, handle: ConnectionHandle, discard: bool = False) -> None:
        """Return a leased connection to the pool.

        Safe to call after a failed query. A connection that is closed,
        explicitly discarded, or released while the pool is draining is
        closed instead of being reused.

        Args:
            handle: The handle returned by acquire().
            discard: Close the connection instead of reusing it.
        """
        async with self._condition:
            if self._leased.pop(handle.id, None) is None:
                self._probe.unknown_connection_returned(handle.id)
                return

            reason = None
            if discard:
                reason = "discarded"
            elif self._closing:
                reason = "pool_closing"
            elif handle.connection.is_closed():
                reason = "connection_closed"

            if reason is None:
                self._idle.append(handle)
            else:
                self._size -= 1
            self._condition.notify_all()

        if reason is None:
            self._probe.connection_returned_to_pool(handle.id)
        else:
            await self._close_connection(handle, reason=reason)

    @asynccontextmanager
    async def lease(self, timeout: float | None = None) -> AsyncIterator[ConnectionHandle]:
        """Acquire a connection for the duration of a block.

        The connection is always released. If the block is cancelled the
        connection may be mid-statement, so it is discarded.
        """
        handle = await self.acquire(timeout=timeout)
        discard = False
        try:
            yield handle
        except asyncio.CancelledError:
            discard = True
            raise
        finally:
            await self.release(handle, discard=discard)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for outstanding leases, then close every connection.

        Only used during shutdown. New acquire() calls fail once draining
        has begun. Calling drain() again after the pool closed is a no-op.

        Args:
            timeout: Optional limit on the wait for outstanding leases.
                Connections still leased afterwards are terminated.
        """
        async with self._condition:
            if self._closed:
                return
            first_call = not self._closing
            self._closing = True
            self._condition.notify_all()
            leased = len(self._leased)

        if first_call:
            self._probe.pool_draining(leased=leased)

        try:
            async with asyncio.timeout(timeout):
                async with self._condition:
                    await self._condition.wait_for(lambda: not self._leased)
        except TimeoutError:
            self._probe.pool_drain_timed_out(leased=len(self._leased))

        async with self._condition:
            if self._closed:
                return
            idle = list(self._idle)
            forced = list(self._leased.values())
            self._idle.clear()
            self._leased.clear()
            self._size -= len(idle) + len(forced)
            self._closed = True

        for handle in idle:
            await self._close_connection(handle, reason="pool_closed")
        for handle in forced:
            handle.connection.terminate()
        self._probe.pool_closed()

    def _can_lease(self) -> bool:
        return self._closing or bool(self._idle) or self._size < self.max_size

    def _ensure_open(self) -> None:
        if self._closing:
            raise DatabaseConnectionError("Connection pool is closed")

    async def _create_handle(self) -> ConnectionHandle:
        """Open and prepare one physical connection."""
        try:
            conn = await self._connect()
        except CONNECT_ERRORS as e:
            self._probe.connection_failed(
                host=self._settings.host,
                database=self._settings.name,
                error=e,
            )
            raise DatabaseConnectionError(f"Failed to connect to database: {e}") from e

        try:
            await self._setup_age(conn)
        except CONNECT_ERRORS as e:
            conn.terminate()
            self._probe.connection_failed(
                host=self._settings.host,
                database=self._settings.name,
                error=e,
            )
            raise DatabaseConnectionError(f"Failed to configure AGE: {e}") from e

        self._probe.connection_established(
            host=self._settings.host,
            database=self._settings.name,
        )
        return ConnectionHandle(id=next(self._ids), connection=conn)

    async def _connect_asyncpg(self) -> asyncpg.Connection:
        return await asyncpg.connect(
            host=self._settings.host,
            port=self._settings.port,
            user=self._settings.user,
            password=self._settings.password.get_secret_value(),
            database=self._settings.name,
            timeout=self._settings.connect_timeout_seconds,
            # Every statement carries a fresh nonce, so caching never hits.
            statement_cache_size=0,
        )

    async def _setup_age(self, conn: Any) -> None:
        """Set up the AGE extension on a new connection.

        agtype values are exchanged as text so results can be decoded
        by the gateway and parameter maps can be sent as JSON.
        """
        await conn.execute("LOAD 'age';")
        await conn.execute('SET search_path = ag_catalog, "$user", public;')
        await conn.set_type_codec(
            "agtype",
            schema="ag_catalog",
            encoder=str,
            decoder=str,
            format="text",
        )

    async def _close_connection(self, handle: ConnectionHandle, reason: str) -> None:
        if reason != "pool_closed":
            self._probe.connection_discarded(handle.id, reason=reason)
        if reason == "discarded":
            handle.connection.terminate()
            return
        try:
            await handle.connection.close(timeout=CLOSE_TIMEOUT_SECONDS)
        except CONNECT_ERRORS:
            handle.connection.terminate()
