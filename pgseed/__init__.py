"""Seed PostgreSQL schemas with constraint-respecting synthetic rows."""

__version__ = "0.1.0"
