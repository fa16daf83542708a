"""Unit tests for the realtime query channel."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import asyncpg
import pytest
from fastapi.testclient import TestClient

from graph.application.services import GraphQueryExecutor
from graph.presentation.realtime import (
    DATA_EVENT,
    ERROR_EVENT,
    QUERY_EVENT,
    SESSION_EVENT,
    QueryEventHandler,
)
from graph.presentation.sessions import Session
from infrastructure.database.connection_pool import ConnectionPool
from infrastructure.lifecycle import LifecycleManager
from tests.unit.conftest import VERTEX_ALICE, FakeConnector


def query_frame(graph, query, **extra) -> str:
    return json.dumps({"event": QUERY_EVENT, "data": {"graph": graph, "q": query, **extra}})


@pytest.fixture
def websocket() -> MagicMock:
    ws = MagicMock()
    ws.send_json = AsyncMock()
    return ws


@pytest.fixture
def session(websocket: MagicMock) -> Session:
    return Session(id="session-1", websocket=websocket)


@pytest.fixture
def lifecycle(pool: ConnectionPool) -> LifecycleManager:
    return LifecycleManager(pool, shutdown_timeout=1.0)


@pytest.fixture
def handler(session, pool, lifecycle, gateway_settings) -> QueryEventHandler:
    return QueryEventHandler(
        session,
        GraphQueryExecutor(pool),
        lifecycle,
        gateway_settings,
        probe=MagicMock(),
    )


def sent_frames(websocket: MagicMock) -> list[dict]:
    return [call.args[0] for call in websocket.send_json.call_args_list]


class TestQueryEventHandler:
    """Tests for handling inbound frames of one session."""

    @pytest.mark.asyncio
    async def test_query_event_emits_data(
        self, handler, lifecycle, websocket, connector: FakeConnector
    ):
        connector.rows = [VERTEX_ALICE]

        await handler.handle_frame(query_frame("company", "MATCH (p:Person) RETURN p"))
        await lifecycle.shutdown("test")

        [frame] = sent_frames(websocket)
        assert frame["event"] == DATA_EVENT
        assert frame["data"]["graph"] == "company"
        assert frame["data"]["query"] == "MATCH (p:Person) RETURN p"
        assert frame["data"]["data"][0]["properties"]["name"] == "Alice Smith"
        assert "timestamp" in frame["data"]

    @pytest.mark.asyncio
    async def test_failed_query_emits_error(
        self, handler, lifecycle, websocket, connector: FakeConnector
    ):
        connector.fetch_error = asyncpg.PostgresError("syntax error at or near \"RETRN\"")

        await handler.handle_frame(query_frame("company", "MATCH (n) RETRN n"))
        await lifecycle.shutdown("test")

        [frame] = sent_frames(websocket)
        assert frame["event"] == ERROR_EVENT
        assert frame["data"]["error"] == "Query execution failed"
        assert frame["data"]["message"] == "The database rejected the query"
        assert frame["data"]["graph"] == "company"
        assert frame["data"]["query"] == "MATCH (n) RETRN n"

    @pytest.mark.asyncio
    async def test_missing_query_emits_error_without_backend_access(
        self, handler, lifecycle, websocket, connector: FakeConnector
    ):
        await handler.handle_frame(query_frame("company", None))
        await lifecycle.shutdown("test")

        [frame] = sent_frames(websocket)
        assert frame["event"] == ERROR_EVENT
        assert "query" in frame["data"]["message"]
        assert connector.fetch_calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            json.dumps(["graph:query"]),
            json.dumps({"event": "graph:mutate", "data": {}}),
            json.dumps({"event": QUERY_EVENT, "data": "MATCH (n) RETURN n"}),
        ],
    )
    async def test_invalid_frames_emit_invalid_event(self, handler, websocket, raw):
        await handler.handle_frame(raw)

        [frame] = sent_frames(websocket)
        assert frame["event"] == ERROR_EVENT
        assert frame["data"]["error"] == "Invalid event"

    @pytest.mark.asyncio
    async def test_query_after_shutdown_is_refused(self, handler, lifecycle, websocket):
        await lifecycle.shutdown("test")

        await handler.handle_frame(query_frame("company", "MATCH (n) RETURN n"))

        [frame] = sent_frames(websocket)
        assert frame["event"] == ERROR_EVENT
        assert frame["data"]["message"] == "Server is shutting down"

    @pytest.mark.asyncio
    async def test_result_for_closed_session_is_dropped(
        self, handler, session, lifecycle, websocket
    ):
        session.is_open = False

        await handler.handle_frame(query_frame("company", "MATCH (n) RETURN n"))
        await lifecycle.shutdown("test")

        websocket.send_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_queries_on_one_session_run_independently(
        self, handler, lifecycle, websocket, connector: FakeConnector
    ):
        connector.rows = [VERTEX_ALICE]
        release_slow = asyncio.Event()
        first_sent = asyncio.Event()
        websocket.send_json.side_effect = lambda frame: first_sent.set()

        async def hold_slow_query(sql, args):
            if "Slow" in sql:
                await release_slow.wait()

        connector.before_fetch = hold_slow_query

        await handler.handle_frame(query_frame("company", "MATCH (n:Slow) RETURN n"))
        await handler.handle_frame(query_frame("company", "MATCH (n:Fast) RETURN n"))
        await asyncio.wait_for(first_sent.wait(), timeout=1.0)

        [fast] = sent_frames(websocket)
        assert fast["event"] == DATA_EVENT
        assert fast["data"]["query"] == "MATCH (n:Fast) RETURN n"

        release_slow.set()
        await lifecycle.shutdown("test")

        frames = sent_frames(websocket)
        assert [frame["data"]["query"] for frame in frames] == [
            "MATCH (n:Fast) RETURN n",
            "MATCH (n:Slow) RETURN n",
        ]
        assert all(frame["event"] == DATA_EVENT for frame in frames)

    @pytest.mark.asyncio
    async def test_non_finite_float_result_emits_error(
        self, handler, lifecycle, websocket, connector: FakeConnector
    ):
        connector.rows = ["NaN"]

        await handler.handle_frame(query_frame("company", "RETURN 0.0/0.0"))
        await lifecycle.shutdown("test")

        [frame] = sent_frames(websocket)
        assert frame["event"] == ERROR_EVENT
        assert "data" not in frame["data"]


class TestGraphChannel:
    """End-to-end tests for the /ws endpoint."""

    def test_session_receives_id_and_query_results(self, app, connector: FakeConnector):
        connector.rows = [VERTEX_ALICE]

        with TestClient(app) as test_client:
            with test_client.websocket_connect("/ws") as ws:
                greeting = ws.receive_json()
                ws.send_text(query_frame("company", "MATCH (p:Person) RETURN p"))
                result = ws.receive_json()

        assert greeting["event"] == SESSION_EVENT
        assert greeting["data"]["session_id"]
        assert result["event"] == DATA_EVENT
        assert result["data"]["data"][0]["label"] == "Person"

    def test_invalid_frame_does_not_close_channel(self, app, connector: FakeConnector):
        connector.rows = ["1"]

        with TestClient(app) as test_client:
            with test_client.websocket_connect("/ws") as ws:
                ws.receive_json()
                ws.send_text("not json")
                rejected = ws.receive_json()
                ws.send_text(query_frame("company", "RETURN 1"))
                result = ws.receive_json()

        assert rejected["event"] == ERROR_EVENT
        assert result["event"] == DATA_EVENT
        assert result["data"]["data"] == [1]
