"""Database infrastructure: the AGE connection pool and its errors."""

from infrastructure.database.exceptions import (
    DatabaseConnectionError,
    DatabaseError,
    PoolExhausted,
    QueryExecutionError,
)

__all__ = [
    "DatabaseConnectionError",
    "DatabaseError",
    "PoolExhausted",
    "QueryExecutionError",
]
