"""Domain layer: ports shared across adapters."""
