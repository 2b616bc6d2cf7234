"""Domain layer: enums, entities and exceptions free of infrastructure concerns."""
