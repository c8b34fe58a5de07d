"""Core domain logic (models, reconcilers, validation)."""
