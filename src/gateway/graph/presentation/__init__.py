"""Transport adapters for the Graph bounded context."""
