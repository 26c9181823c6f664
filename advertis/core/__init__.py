"""Core cross-cutting types (exception hierarchy)."""
