"""Domain probes for infrastructure observability.

Domain probes provide a high-level instrumentation API oriented around
domain semantics, keeping infrastructure code clean and testable.
"""

from __future__ import annotations

from typing import Protocol

import structlog


class ConnectionProbe(Protocol):
    """Domain probe for connection pool observability.

    This probe captures domain-significant events related to database
    connections without exposing logging implementation details.
    """

    def pool_opened(self, min_conn: int, max_conn: int, dsn: str) -> None:
        """Record that the pool opened its initial connections."""
        ...

    def connection_established(self, host: str, database: str) -> None:
        """Record that a physical connection was successfully established."""
        ...

    def connection_failed(self, host: str, database: str, error: Exception) -> None:
        """Record that a physical connection attempt failed."""
        ...

    def connection_acquired_from_pool(self, handle_id: int) -> None:
        """Record that a connection was leased from the pool."""
        ...

    def connection_returned_to_pool(self, handle_id: int) -> None:
        """Record that a leased connection was returned to the pool."""
        ...

    def connection_discarded(self, handle_id: int, reason: str) -> None:
        """Record that a connection was dropped instead of being reused."""
        ...

    def unknown_connection_returned(self, handle_id: int) -> None:
        """Record a release of a handle the pool does not consider leased."""
        ...

    def pool_exhausted(self, timeout: float, max_conn: int) -> None:
        """Record that no connection was freed within the wait limit."""
        ...

    def pool_draining(self, leased: int) -> None:
        """Record that the pool started draining outstanding leases."""
        ...

    def pool_drain_timed_out(self, leased: int) -> None:
        """Record that leases were still outstanding when drain gave up."""
        ...

    def pool_closed(self) -> None:
        """Record that every physical connection was closed."""
        ...


class DefaultConnectionProbe:
    """Default implementation of ConnectionProbe using structlog."""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None):
        self._logger = logger or structlog.get_logger()

    def pool_opened(self, min_conn: int, max_conn: int, dsn: str) -> None:
        self._logger.info(
            "connection_pool_opened",
            min_connections=min_conn,
            max_connections=max_conn,
            dsn=dsn,
        )

    def connection_established(self, host: str, database: str) -> None:
        self._logger.info(
            "database_connection_established",
            host=host,
            database=database,
        )

    def connection_failed(self, host: str, database: str, error: Exception) -> None:
        self._logger.error(
            "database_connection_failed",
            host=host,
            database=database,
            error=str(error),
        )

    def connection_acquired_from_pool(self, handle_id: int) -> None:
        self._logger.debug(
            "connection_acquired_from_pool",
            handle_id=handle_id,
        )

    def connection_returned_to_pool(self, handle_id: int) -> None:
        self._logger.debug(
            "connection_returned_to_pool",
            handle_id=handle_id,
        )

    def connection_discarded(self, handle_id: int, reason: str) -> None:
        self._logger.warning(
            "connection_discarded",
            handle_id=handle_id,
            reason=reason,
        )

    def unknown_connection_returned(self, handle_id: int) -> None:
        self._logger.warning(
            "unknown_connection_returned",
            handle_id=handle_id,
        )

    def pool_exhausted(self, timeout: float, max_conn: int) -> None:
        self._logger.warning(
            "connection_pool_exhausted",
            timeout_seconds=timeout,
            max_connections=max_conn,
        )

    def pool_draining(self, leased: int) -> None:
        self._logger.info(
            "connection_pool_draining",
            leased=leased,
        )

    def pool_drain_timed_out(self, leased: int) -> None:
        self._logger.warning(
            "connection_pool_drain_timed_out",
            leased=leased,
        )

    def pool_closed(self) -> None:
        self._logger.info(
            "connection_pool_closed",
        )


class LifecycleProbe(Protocol):
    """Domain probe for process lifecycle observability."""

    def signal_received(self, signal_name: str, repeated: bool) -> None:
        """Record a termination signal delivered to the process."""
        ...

    def pool_warmup_failed(self, error: Exception) -> None:
        """Record that the initial connections could not be opened."""
        ...

    def shutdown_started(self, reason: str) -> None:
        """Record the start of graceful shutdown."""
        ...

    def shutdown_already_in_progress(self, reason: str) -> None:
        """Record a duplicate shutdown request."""
        ...

    def waiting_for_in_flight(self, count: int) -> None:
        """Record that shutdown is waiting for in-flight work."""
        ...

    def in_flight_wait_timed_out(self, remaining: int) -> None:
        """Record that in-flight work outlived the shutdown grace period."""
        ...

    def shutdown_completed(self) -> None:
        """Record that shutdown finished."""
        ...


class DefaultLifecycleProbe:
    """Default implementation of LifecycleProbe using structlog."""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None):
        self._logger = logger or structlog.get_logger()

    def signal_received(self, signal_name: str, repeated: bool) -> None:
        self._logger.info(
            "termination_signal_received",
            signal=signal_name,
            repeated=repeated,
        )

    def pool_warmup_failed(self, error: Exception) -> None:
        self._logger.warning("connection_pool_warmup_failed", error=str(error))

    def shutdown_started(self, reason: str) -> None:
        self._logger.info("shutdown_started", reason=reason)

    def shutdown_already_in_progress(self, reason: str) -> None:
        self._logger.info("shutdown_already_in_progress", reason=reason)

    def waiting_for_in_flight(self, count: int) -> None:
        self._logger.info("waiting_for_in_flight_queries", count=count)

    def in_flight_wait_timed_out(self, remaining: int) -> None:
        self._logger.warning("in_flight_wait_timed_out", remaining=remaining)

    def shutdown_completed(self) -> None:
        self._logger.info("shutdown_completed")
