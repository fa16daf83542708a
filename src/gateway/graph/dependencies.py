"""Dependency injection for Graph bounded context.

The application factory builds the pool, executor, lifecycle manager and
session registry once and stores them on ``app.state``. These providers
hand them to route handlers of both transports.
"""

from fastapi.requests import HTTPConnection

from graph.application.services import GraphQueryExecutor
from graph.presentation.sessions import SessionRegistry
from infrastructure.lifecycle import LifecycleManager
from infrastructure.settings import GatewaySettings


def get_graph_query_executor(connection: HTTPConnection) -> GraphQueryExecutor:
    """Get the application-scoped query executor."""
    return connection.app.state.executor


def get_lifecycle_manager(connection: HTTPConnection) -> LifecycleManager:
    """Get the application-scoped lifecycle manager."""
    return connection.app.state.lifecycle


def get_session_registry(connection: HTTPConnection) -> SessionRegistry:
    """Get the registry of open realtime sessions."""
    return connection.app.state.sessions


def get_settings(connection: HTTPConnection) -> GatewaySettings:
    """Get the settings the application was created with."""
    return connection.app.state.settings
