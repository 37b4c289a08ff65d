"""Domain layer: entities and the contracts infrastructure implements."""
