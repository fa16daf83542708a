"""Domain value objects for the Graph bounded context.

These are immutable data structures that represent domain concepts
within the Graph context. They have no identity - equality is based
on their attribute values.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

from shared_kernel.exceptions import InvalidRequest

# A decoded agtype value: vertex/edge/path dicts, lists, or scalars.
GraphRecord: TypeAlias = Any


class GraphQueryRequest(BaseModel):
    """A Cypher query addressed to one graph, with positional parameters."""

    model_config = ConfigDict(frozen=True)

    graph: str = Field(description="Name of the target graph")
    query: str = Field(description="Cypher statement returning one column")
    params: tuple[Any, ...] = Field(
        default=(),
        description="Positional parameters, visible to Cypher as $p1..$pN",
    )

    @classmethod
    def create(
        cls,
        graph: str | None,
        query: str | None,
        params: Sequence[Any] | None = None,
    ) -> GraphQueryRequest:
        """Validate raw input and build a request.

        Raises:
            InvalidRequest: If graph or query is missing or blank, or
                params is not a sequence.
        """
        if not isinstance(graph, str) or not graph.strip():
            raise InvalidRequest("A non-empty 'graph' is required")
        if not isinstance(query, str) or not query.strip():
            raise InvalidRequest("A non-empty 'query' is required")
        if params is None:
            params = ()
        elif isinstance(params, (str, bytes)) or not isinstance(params, Sequence):
            raise InvalidRequest("'params' must be a list of values")
        return cls(graph=graph, query=query, params=tuple(params))


class QueryResult(BaseModel):
    """Decoded records in the order the backend returned the rows."""

    model_config = ConfigDict(frozen=True)

    graph: str
    query: str
    records: tuple[GraphRecord, ...] = ()

    @property
    def count(self) -> int:
        return len(self.records)
