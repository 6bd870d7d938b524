"""Infrastructure adapters: inference provider and repositories."""
