"""Pure domain layer: entities, services, constants and exceptions."""
