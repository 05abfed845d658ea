"""Domain layer: entities and value objects, standard library only."""
