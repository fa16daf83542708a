"""Protocol for graph query observability.

Defines the interface for domain probes that capture application-level
domain events for graph query execution.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class GraphQueryProbe(Protocol):
    """Domain probe for graph query execution."""

    def query_executed(
        self,
        graph: str,
        query: str,
        record_count: int,
        duration_ms: float,
    ) -> None:
        """Record that a query completed and its rows were decoded."""
        ...

    def query_rejected(self, graph: str | None, query: str | None, reason: str) -> None:
        """Record that a request failed validation before backend access."""
        ...

    def query_failed(self, graph: str, query: str, error: Exception) -> None:
        """Record that the backend or the pool failed the query."""
        ...

    def decode_failed(
        self,
        graph: str,
        query: str,
        row_index: int,
        error: Exception,
    ) -> None:
        """Record that a result row could not be decoded."""
        ...

    def connectivity_check_failed(self, error: Exception) -> None:
        """Record that the database health check failed."""
        ...

    def with_context(self, context: ObservationContext) -> GraphQueryProbe:
        """Create a new probe with observation context bound."""
        ...
