"""Domain layer: entities, DTOs, value objects, ports and exceptions."""
