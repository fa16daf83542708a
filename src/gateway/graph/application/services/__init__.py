"""Application services for the Graph bounded context."""

from graph.application.services.graph_query_executor import GraphQueryExecutor

__all__ = [
    "GraphQueryExecutor",
]
