"""Domain probes for Graph application layer."""

from graph.application.observability.default_graph_query_probe import (
    DefaultGraphQueryProbe,
)
from graph.application.observability.graph_query_probe import GraphQueryProbe

__all__ = [
    "GraphQueryProbe",
    "DefaultGraphQueryProbe",
]
