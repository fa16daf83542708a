"""Exceptions for Graph Infrastructure."""

from __future__ import annotations

from infrastructure.database.exceptions import DatabaseError
from shared_kernel.exceptions import InvalidRequest


class InsecureQueryError(InvalidRequest):
    """Raised when a Cypher query is identified as potentially malicious."""

    def __init__(self, message: str, query: str | None = None):
        super().__init__(message)
        self.query = query


class DecodeError(DatabaseError):
    """Raised when a result row does not parse as structured data."""

    def __init__(self, message: str, row_index: int, payload: str | None = None):
        super().__init__(message)
        self.row_index = row_index
        self.payload = payload
