"""Graph application layer.

The query executor shared by the HTTP and realtime transports.
"""

from graph.application.services import GraphQueryExecutor

__all__ = ["GraphQueryExecutor"]
