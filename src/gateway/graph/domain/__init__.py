"""Graph domain module.

Contains value objects for the Graph bounded context.
"""

from graph.domain.value_objects import (
    GraphQueryRequest,
    GraphRecord,
    QueryResult,
)

__all__ = [
    "GraphQueryRequest",
    "GraphRecord",
    "QueryResult",
]
