"""Process lifecycle management.

The LifecycleManager owns the connection pool's lifetime. Background work
(realtime queries) is tracked so shutdown can wait for it before the
pool is drained and closed.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import TYPE_CHECKING, Any

from infrastructure.database.exceptions import DatabaseConnectionError
from infrastructure.observability.probes import (
    DefaultLifecycleProbe,
    LifecycleProbe,
)
from shared_kernel.exceptions import ServiceShuttingDown

if TYPE_CHECKING:
    from infrastructure.database.connection_pool import ConnectionPool


class LifecycleManager:
    """Coordinates graceful shutdown of in-flight work and the pool.

    Shutdown runs at most once. Callers arriving while it is in progress,
    or after it finished, wait for the same sequence instead of starting
    another one.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        shutdown_timeout: float = 30.0,
        probe: LifecycleProbe | None = None,
    ):
        self._pool = pool
        self._shutdown_timeout = shutdown_timeout
        self._probe = probe or DefaultLifecycleProbe()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._accepting = True
        self._shutdown: asyncio.Task[None] | None = None

    @property
    def accepting(self) -> bool:
        """Whether new work may still be started."""
        return self._accepting

    @property
    def in_flight(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    def track(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Run a coroutine as a background task that shutdown waits for.

        Raises:
            ServiceShuttingDown: If shutdown has already begun.
        """
        if not self._accepting:
            coro.close()
            raise ServiceShuttingDown("Server is shutting down")
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def start(self) -> None:
        """Open the pool's initial connections.

        An unreachable backend does not prevent startup; connections are
        then opened on first use and the database health check reports
        the outage.
        """
        try:
            await self._pool.open()
        except DatabaseConnectionError as e:
            self._probe.pool_warmup_failed(e)

    async def shutdown(self, reason: str = "shutdown") -> None:
        """Stop accepting work, wait for in-flight work, drain the pool."""
        if self._shutdown is not None:
            self._probe.shutdown_already_in_progress(reason)
        else:
            self._shutdown = asyncio.create_task(self._shutdown_sequence(reason))
        await asyncio.shield(self._shutdown)

    async def _shutdown_sequence(self, reason: str) -> None:
        self._accepting = False
        self._probe.shutdown_started(reason)

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._shutdown_timeout

        pending = {task for task in self._tasks if not task.done()}
        if pending:
            self._probe.waiting_for_in_flight(len(pending))
            _, still_running = await asyncio.wait(
                pending, timeout=self._shutdown_timeout
            )
            if still_running:
                self._probe.in_flight_wait_timed_out(len(still_running))

        await self._pool.drain(timeout=max(0.0, deadline - loop.time()))
        self._probe.shutdown_completed()
