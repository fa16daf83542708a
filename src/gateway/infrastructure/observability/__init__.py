"""Domain probes for the connection pool and the process lifecycle.

Probes expose domain events (a connection discarded, the pool exhausted,
a repeated termination signal) instead of log calls. ObservationContext
carries request or realtime session metadata for the query probes built
on top of it.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from infrastructure.observability.context import ObservationContext
from infrastructure.observability.probes import (
    ConnectionProbe,
    DefaultConnectionProbe,
    DefaultLifecycleProbe,
    LifecycleProbe,
)

__all__ = [
    "ConnectionProbe",
    "DefaultConnectionProbe",
    "DefaultLifecycleProbe",
    "LifecycleProbe",
    "ObservationContext",
]
