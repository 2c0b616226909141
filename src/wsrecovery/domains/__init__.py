"""Bounded contexts of the workspace recovery engine."""
