"""Application layer: authorization, audit and menu services."""
