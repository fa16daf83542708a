"""Domain probes for the transport adapters.

Failures raised by the executor are already recorded by its own probe;
these probes cover what only the adapters can see: sessions opening and
closing, malformed events, undeliverable results and unexpected errors.
"""

from __future__ import annotations

from typing import Any, Protocol

import structlog


class TransportProbe(Protocol):
    """Domain probe for HTTP and realtime adapters."""

    def session_opened(self, session_id: str, client: str | None) -> None:
        """Record that a realtime channel was accepted."""
        ...

    def session_closed(self, session_id: str, open_sessions: int) -> None:
        """Record that a realtime channel closed."""
        ...

    def query_event_received(self, session_id: str, graph: Any, query: Any) -> None:
        """Record a query event on a realtime channel."""
        ...

    def invalid_event(self, session_id: str, reason: str) -> None:
        """Record a frame that is not a valid event."""
        ...

    def result_dropped(self, session_id: str, event: str) -> None:
        """Record a result that could not be delivered to its session."""
        ...

    def unexpected_error(
        self,
        transport: str,
        error: Exception,
        graph: Any = None,
        query: Any = None,
    ) -> None:
        """Record an error outside the gateway error taxonomy."""
        ...


class DefaultTransportProbe:
    """Default implementation of TransportProbe using structlog."""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None):
        self._logger = logger or structlog.get_logger()

    def session_opened(self, session_id: str, client: str | None) -> None:
        self._logger.info("realtime_session_opened", session_id=session_id, client=client)

    def session_closed(self, session_id: str, open_sessions: int) -> None:
        self._logger.info(
            "realtime_session_closed",
            session_id=session_id,
            open_sessions=open_sessions,
        )

    def query_event_received(self, session_id: str, graph: Any, query: Any) -> None:
        self._logger.info(
            "realtime_query_received",
            session_id=session_id,
            graph=graph,
            query=query,
        )

    def invalid_event(self, session_id: str, reason: str) -> None:
        self._logger.warning(
            "realtime_invalid_event",
            session_id=session_id,
            reason=reason,
        )

    def result_dropped(self, session_id: str, event: str) -> None:
        self._logger.info(
            "realtime_result_dropped",
            session_id=session_id,
            event=event,
        )

    def unexpected_error(
        self,
        transport: str,
        error: Exception,
        graph: Any = None,
        query: Any = None,
    ) -> None:
        self._logger.exception(
            "transport_unexpected_error",
            transport=transport,
            graph=graph,
            query=query,
            error=str(error),
            exc_info=error,
        )
