"""Database-specific exceptions for the gateway."""

from __future__ import annotations

from shared_kernel.exceptions import GatewayError


class DatabaseError(GatewayError):
    """Base exception for database operations."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when a backend connection cannot be obtained or is lost."""

    pass


class PoolExhausted(DatabaseConnectionError):
    """Raised when no connection is freed within the acquire wait limit."""

    def __init__(self, message: str, timeout: float | None = None):
        super().__init__(message)
        self.timeout = timeout


class QueryExecutionError(DatabaseError):
    """Raised when the backend rejects a graph query."""

    def __init__(
        self,
        message: str,
        graph: str | None = None,
        query: str | None = None,
    ):
        super().__init__(message)
        self.graph = graph
        self.query = query
