"""Domain layer: entities, exceptions, ports."""
