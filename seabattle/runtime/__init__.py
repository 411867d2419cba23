"""Cooperative runtime primitives: scheduling and flow tables."""
