"""Mapping of gateway errors to client-facing messages.

Raw backend error text can reveal schema and deployment details, so it is
only forwarded when the gateway is configured to expose error details.
"""

from __future__ import annotations

from datetime import UTC, datetime

from graph.infrastructure.exceptions import DecodeError
from infrastructure.database.exceptions import (
    DatabaseConnectionError,
    PoolExhausted,
    QueryExecutionError,
)
from shared_kernel.exceptions import InvalidRequest, ServiceShuttingDown

# Checked in order, so subclasses come before their bases.
GENERIC_MESSAGES: tuple[tuple[type[Exception], str], ...] = (
    (PoolExhausted, "No database connection available, try again later"),
    (DatabaseConnectionError, "Database is unavailable"),
    (QueryExecutionError, "The database rejected the query"),
    (DecodeError, "The database returned a result that could not be decoded"),
)

UNKNOWN_ERROR_MESSAGE = "Unknown error"


def client_message(error: Exception, expose_details: bool) -> str:
    """Message to return to a client for a caught error."""
    if isinstance(error, (InvalidRequest, ServiceShuttingDown)) or expose_details:
        return str(error) or UNKNOWN_ERROR_MESSAGE
    for error_type, message in GENERIC_MESSAGES:
        if isinstance(error, error_type):
            return message
    return UNKNOWN_ERROR_MESSAGE


def timestamp() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(UTC).isoformat()
