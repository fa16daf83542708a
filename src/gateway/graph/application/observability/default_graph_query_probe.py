"""Default implementation of graph query probe.

Provides a structlog-based implementation of the GraphQueryProbe protocol
for observability at the use-case level.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from graph.application.observability.graph_query_probe import GraphQueryProbe

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class DefaultGraphQueryProbe(GraphQueryProbe):
    """Default implementation of GraphQueryProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultGraphQueryProbe:
        return DefaultGraphQueryProbe(logger=self._logger, context=context)

    def query_executed(
        self,
        graph: str,
        query: str,
        record_count: int,
        duration_ms: float,
    ) -> None:
        self._logger.info(
            "graph_query_executed",
            graph=graph,
            query=query,
            record_count=record_count,
            duration_ms=round(duration_ms, 2),
            **self._get_context_kwargs(),
        )

    def query_rejected(self, graph: str | None, query: str | None, reason: str) -> None:
        self._logger.info(
            "graph_query_rejected",
            graph=graph,
            query=query,
            reason=reason,
            **self._get_context_kwargs(),
        )

    def query_failed(self, graph: str, query: str, error: Exception) -> None:
        self._logger.error(
            "graph_query_failed",
            graph=graph,
            query=query,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )

    def decode_failed(
        self,
        graph: str,
        query: str,
        row_index: int,
        error: Exception,
    ) -> None:
        self._logger.error(
            "graph_result_decode_failed",
            graph=graph,
            query=query,
            row_index=row_index,
            error=str(error),
            **self._get_context_kwargs(),
        )

    def connectivity_check_failed(self, error: Exception) -> None:
        self._logger.error(
            "database_health_check_failed",
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )
