"""Infrastructure layer: HTTP integrations, storage, observability."""
