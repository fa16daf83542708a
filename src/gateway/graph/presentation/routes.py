"""HTTP routes for Graph bounded context.

Request/response access to the shared query executor. Every response body
carries a timestamp, and every failure is answered with a JSON error body
rather than propagating out of the handler.
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from graph.application.services import GraphQueryExecutor
from graph.dependencies import get_graph_query_executor, get_settings
from graph.infrastructure.age_statements import parameter_name
from graph.presentation.errors import client_message, timestamp
from graph.presentation.observability import DefaultTransportProbe, TransportProbe
from infrastructure.observability.context import ObservationContext
from infrastructure.settings import GatewaySettings
from shared_kernel.exceptions import GatewayError, InvalidRequest

router = APIRouter(prefix="/api", tags=["graph"])

PEOPLE_QUERY = "MATCH (p:Person) RETURN p"
PEOPLE_FILTER_QUERY = (
    f"MATCH (p:Person) WHERE p.name CONTAINS ${parameter_name(1)} RETURN p"
)

_probe: TransportProbe = DefaultTransportProbe()


class GraphQueryBody(BaseModel):
    """Body of POST /api/graph/query."""

    graph: str | None = Field(default=None, description="Name of the target graph")
    query: str | None = Field(default=None, description="Cypher statement")
    params: list[Any] | None = Field(
        default=None,
        description="Positional parameters, visible to Cypher as $p1..$pN",
    )


def _http_context() -> ObservationContext:
    return ObservationContext(request_id=uuid.uuid4().hex, transport="http")


def _error_response(
    status_code: int,
    error: str,
    message: str,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message, "timestamp": timestamp()},
    )


@router.get("/people")
async def list_people(
    filter: str | None = None,
    executor: GraphQueryExecutor = Depends(get_graph_query_executor),
    settings: GatewaySettings = Depends(get_settings),
) -> JSONResponse:
    """List Person vertices, optionally filtered by a name substring.

    The filter text is bound as a Cypher parameter and compared with
    CONTAINS; it never becomes part of the query text.
    """
    if filter:
        query, params = PEOPLE_FILTER_QUERY, [filter]
    else:
        query, params = PEOPLE_QUERY, []

    try:
        result = await executor.execute_graph_query(
            settings.people_graph, query, params, context=_http_context()
        )
    except Exception as e:
        if not isinstance(e, GatewayError):
            _probe.unexpected_error("http", e, graph=settings.people_graph, query=query)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to fetch people",
            client_message(e, settings.expose_error_details),
        )

    return JSONResponse(
        content={
            "data": list(result.records),
            "count": result.count,
            "timestamp": timestamp(),
        }
    )


@router.post("/graph/query")
async def execute_graph_query(
    body: GraphQueryBody,
    executor: GraphQueryExecutor = Depends(get_graph_query_executor),
    settings: GatewaySettings = Depends(get_settings),
) -> JSONResponse:
    """Execute an arbitrary Cypher query against the named graph.

    Body:
        {"graph": "company", "query": "MATCH (p:Person) RETURN p", "params": []}

    Returns:
        {"data": [...], "count": N, "graph": "company", "timestamp": "..."}
    """
    if not body.graph or not body.query:
        return _error_response(
            status.HTTP_400_BAD_REQUEST,
            "Missing required fields",
            "Both 'graph' and 'query' are required",
        )

    try:
        result = await executor.execute_graph_query(
            body.graph, body.query, body.params, context=_http_context()
        )
    except InvalidRequest as e:
        return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid request", str(e))
    except Exception as e:
        if not isinstance(e, GatewayError):
            _probe.unexpected_error("http", e, graph=body.graph, query=body.query)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to execute graph query",
            client_message(e, settings.expose_error_details),
        )

    return JSONResponse(
        content={
            "data": list(result.records),
            "count": result.count,
            "graph": body.graph,
            "timestamp": timestamp(),
        }
    )
