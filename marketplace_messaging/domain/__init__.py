"""Domain layer: entities, notification types and the error taxonomy."""
