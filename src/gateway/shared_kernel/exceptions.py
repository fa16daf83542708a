"""Error taxonomy shared by the executor and both transports.

Every error the gateway raises on purpose derives from GatewayError so the
transport adapters can map it to a client-facing response in one place.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base exception for all gateway failures."""

    pass


class InvalidRequest(GatewayError):
    """Raised when a request is missing required fields.

    Detected before any backend access takes place.
    """

    pass


class ServiceShuttingDown(GatewayError):
    """Raised when new work is submitted after shutdown has begun."""

    pass
