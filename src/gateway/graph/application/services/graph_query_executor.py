"""Graph query executor shared by the HTTP and realtime transports.

Application service that turns a (graph, query, params) triple into
decoded records. Both transport adapters call the same executor, so
statement construction, pooling and decoding behave identically for them.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

import asyncpg

from graph.application.observability import (
    DefaultGraphQueryProbe,
    GraphQueryProbe,
)
from graph.domain.value_objects import GraphQueryRequest, QueryResult
from graph.infrastructure.age_statements import build_cypher_statement
from graph.infrastructure.agtype import decode_agtype
from graph.infrastructure.exceptions import DecodeError
from infrastructure.database.exceptions import (
    DatabaseConnectionError,
    DatabaseError,
    QueryExecutionError,
)
from shared_kernel.exceptions import InvalidRequest

if TYPE_CHECKING:
    from infrastructure.database.connection_pool import ConnectionPool
    from infrastructure.observability.context import ObservationContext


class GraphQueryExecutor:
    """Executes Cypher queries through the shared connection pool.

    The executor holds no per-request state. Each call leases its own
    connection and releases it before returning, whether the call
    succeeds or fails.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        probe: GraphQueryProbe | None = None,
        nonce_generator: Callable[[], str] | None = None,
    ):
        """Initialize the executor.

        Args:
            pool: Application-scoped connection pool.
            probe: Optional domain probe for observability.
            nonce_generator: Optional source of dollar-quote tags.
        """
        self._pool = pool
        self._probe = probe or DefaultGraphQueryProbe()
        self._nonce_generator = nonce_generator

    async def execute_graph_query(
        self,
        graph: str | None,
        query: str | None,
        params: Sequence[Any] | None = None,
        context: ObservationContext | None = None,
    ) -> QueryResult:
        """Validate the input and execute it.

        Raises:
            InvalidRequest: If graph or query is empty. No connection
                is leased in that case.
        """
        probe = self._probe_for(context)
        try:
            request = GraphQueryRequest.create(graph, query, params)
        except InvalidRequest as e:
            probe.query_rejected(graph=graph, query=query, reason=str(e))
            raise
        return await self.execute(request, context=context)

    async def execute(
        self,
        request: GraphQueryRequest,
        context: ObservationContext | None = None,
    ) -> QueryResult:
        """Execute a validated request.

        Args:
            request: The graph, query and positional parameters.
            context: Optional observation context of the calling transport.

        Returns:
            QueryResult with one record per row, in row order.

        Raises:
            PoolExhausted: If no connection is freed within the wait limit.
            DatabaseConnectionError: If the backend cannot be reached.
            QueryExecutionError: If the backend rejects the statement.
            DecodeError: If any row does not decode. No records are returned.
        """
        probe = self._probe_for(context, graph=request.graph)
        started = time.perf_counter()

        try:
            statement = build_cypher_statement(
                graph=request.graph,
                query=request.query,
                params=request.params,
                nonce_generator=self._nonce_generator,
            )
        except InvalidRequest as e:
            probe.query_rejected(graph=request.graph, query=request.query, reason=str(e))
            raise

        try:
            async with self._pool.lease() as handle:
                rows = await handle.connection.fetch(statement.sql, *statement.args)
        except asyncpg.PostgresError as e:
            probe.query_failed(graph=request.graph, query=request.query, error=e)
            raise QueryExecutionError(
                f"Query execution failed: {e}",
                graph=request.graph,
                query=request.query,
            ) from e
        except (asyncpg.InterfaceError, OSError) as e:
            probe.query_failed(graph=request.graph, query=request.query, error=e)
            raise DatabaseConnectionError(f"Lost connection to database: {e}") from e
        except DatabaseError as e:
            probe.query_failed(graph=request.graph, query=request.query, error=e)
            raise

        records = []
        for index, row in enumerate(rows):
            try:
                records.append(decode_agtype(row[0]))
            except ValueError as e:
                probe.decode_failed(
                    graph=request.graph,
                    query=request.query,
                    row_index=index,
                    error=e,
                )
                raise DecodeError(
                    f"Row {index} is not valid agtype: {e}",
                    row_index=index,
                    payload=None if row[0] is None else str(row[0]),
                ) from e

        probe.query_executed(
            graph=request.graph,
            query=request.query,
            record_count=len(records),
            duration_ms=(time.perf_counter() - started) * 1000,
        )
        return QueryResult(graph=request.graph, query=request.query, records=tuple(records))

    async def check_connectivity(self, context: ObservationContext | None = None) -> None:
        """Run a trivial statement through the pool.

        Raises:
            DatabaseError: If a connection cannot be leased or used.
        """
        probe = self._probe_for(context)
        try:
            async with self._pool.lease() as handle:
                await handle.connection.fetchval("SELECT 1")
        except DatabaseError as e:
            probe.connectivity_check_failed(e)
            raise
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            probe.connectivity_check_failed(e)
            raise DatabaseConnectionError(f"Database health check failed: {e}") from e

    def _probe_for(
        self,
        context: ObservationContext | None,
        graph: str | None = None,
    ) -> GraphQueryProbe:
        if context is None:
            return self._probe
        if graph is not None:
            context = context.with_graph(graph)
        return self._probe.with_context(context)
