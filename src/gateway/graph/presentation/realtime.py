"""Realtime WebSocket channel for graph queries.

Frames in both directions are JSON objects of the form
``{"event": <name>, "data": <payload>}``.

Client to server:
    graph:query   {"graph": "company", "q": "MATCH (n) RETURN n LIMIT 1"}

Server to client:
    session       {"session_id": "..."}
    graph:data    {"data": [...], "graph": ..., "query": ..., "timestamp": ...}
    graph:error   {"error": ..., "message": ..., "graph": ..., "query": ..., "timestamp": ...}

Each query runs as its own task, so results of concurrent queries on one
session may arrive in any order. Closing the channel does not cancel
queries already running; their results are dropped.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, WebSocket

from graph.application.services import GraphQueryExecutor
from graph.dependencies import (
    get_graph_query_executor,
    get_lifecycle_manager,
    get_session_registry,
    get_settings,
)
from graph.presentation.errors import client_message, timestamp
from graph.presentation.observability import DefaultTransportProbe, TransportProbe
from graph.presentation.sessions import Session, SessionRegistry
from infrastructure.lifecycle import LifecycleManager
from infrastructure.observability.context import ObservationContext
from infrastructure.settings import GatewaySettings
from shared_kernel.exceptions import GatewayError, ServiceShuttingDown

router = APIRouter(tags=["realtime"])

SESSION_EVENT = "session"
QUERY_EVENT = "graph:query"
DATA_EVENT = "graph:data"
ERROR_EVENT = "graph:error"

QUERY_FAILED = "Query execution failed"
INVALID_EVENT = "Invalid event"

_probe: TransportProbe = DefaultTransportProbe()


class QueryEventHandler:
    """Runs query events of one session against the executor."""

    def __init__(
        self,
        session: Session,
        executor: GraphQueryExecutor,
        lifecycle: LifecycleManager,
        settings: GatewaySettings,
        probe: TransportProbe | None = None,
    ):
        self._session = session
        self._executor = executor
        self._lifecycle = lifecycle
        self._settings = settings
        self._probe = probe or _probe

    async def handle_frame(self, raw: str) -> None:
        """Parse one inbound frame and start the query it carries."""
        try:
            frame = json.loads(raw)
        except ValueError:
            await self._reject("Frame is not valid JSON")
            return

        if not isinstance(frame, dict) or frame.get("event") != QUERY_EVENT:
            event = frame.get("event") if isinstance(frame, dict) else None
            await self._reject(f"Unsupported event: {event!r}")
            return

        data = frame.get("data")
        if not isinstance(data, dict):
            await self._reject("Event data must be an object")
            return

        graph, query = data.get("graph"), data.get("q")
        self._probe.query_event_received(self._session.id, graph, query)

        try:
            self._lifecycle.track(self.run_query(graph, query, data.get("params")))
        except ServiceShuttingDown as e:
            await self._emit_error(e, graph, query)

    async def run_query(self, graph: Any, query: Any, params: Any = None) -> None:
        """Execute one query and emit its result or error to the session."""
        context = ObservationContext(session_id=self._session.id, transport="realtime")
        try:
            result = await self._executor.execute_graph_query(
                graph, query, params, context=context
            )
        except Exception as e:
            if not isinstance(e, GatewayError):
                self._probe.unexpected_error("realtime", e, graph=graph, query=query)
            await self._emit_error(e, graph, query)
            return

        await self._emit(
            DATA_EVENT,
            {
                "data": list(result.records),
                "graph": graph,
                "query": query,
                "timestamp": timestamp(),
            },
        )

    async def _emit_error(self, error: Exception, graph: Any, query: Any) -> None:
        await self._emit(
            ERROR_EVENT,
            {
                "error": QUERY_FAILED,
                "message": client_message(error, self._settings.expose_error_details),
                "graph": graph,
                "query": query,
                "timestamp": timestamp(),
            },
        )

    async def _reject(self, reason: str) -> None:
        self._probe.invalid_event(self._session.id, reason)
        await self._emit(
            ERROR_EVENT,
            {"error": INVALID_EVENT, "message": reason, "timestamp": timestamp()},
        )

    async def _emit(self, event: str, data: dict[str, Any]) -> None:
        if not await self._session.emit(event, data):
            self._probe.result_dropped(self._session.id, event)


@router.websocket("/ws")
async def graph_channel(
    websocket: WebSocket,
    executor: GraphQueryExecutor = Depends(get_graph_query_executor),
    lifecycle: LifecycleManager = Depends(get_lifecycle_manager),
    sessions: SessionRegistry = Depends(get_session_registry),
    settings: GatewaySettings = Depends(get_settings),
) -> None:
    """Persistent channel accepting query events for one session."""
    await websocket.accept()
    session = sessions.register(websocket)
    client = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else None
    _probe.session_opened(session.id, client)

    handler = QueryEventHandler(session, executor, lifecycle, settings)
    try:
        await session.emit(SESSION_EVENT, {"session_id": session.id})
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")
            await handler.handle_frame(raw)
    finally:
        sessions.deregister(session)
        _probe.session_closed(session.id, open_sessions=len(sessions))
