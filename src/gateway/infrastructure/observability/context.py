"""Observation context for domain-oriented observability.

Observation contexts collect and manage contextual metadata for instrumentation,
following the Domain Oriented Observability pattern.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True)
class ObservationContext:
    """Immutable context containing metadata for observability.

    Captures request-scoped metadata that should be included with all
    instrumentation events, so a failed query can be traced back to the
    HTTP request or realtime session that issued it.

    Attributes:
        request_id: Unique identifier for the current HTTP request.
        session_id: Identifier of the realtime session (if applicable).
        transport: Which adapter issued the operation ("http" or "realtime").
        graph_name: Name of the graph being operated on (if applicable).

    Example:
        context = ObservationContext(request_id="req-123", transport="http")
        probe = DefaultGraphQueryProbe().with_context(context.with_graph("company"))
    """

    request_id: str | None = None
    session_id: str | None = None
    transport: str | None = None
    graph_name: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for logging.

        Only includes non-None values to keep logs clean.
        """
        result: dict[str, Any] = {}
        if self.request_id is not None:
            result["request_id"] = self.request_id
        if self.session_id is not None:
            result["session_id"] = self.session_id
        if self.transport is not None:
            result["transport"] = self.transport
        if self.graph_name is not None:
            result["graph_name"] = self.graph_name
        return result

    def with_graph(self, graph_name: str) -> ObservationContext:
        """Create a new context with the graph name set."""
        return replace(self, graph_name=graph_name)
