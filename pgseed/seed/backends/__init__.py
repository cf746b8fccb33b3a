"""Backend registry and factory."""

from typing import Any, Type

from .base import DatabaseBackend, column_cast, quote_ident, qualified_table
from .postgres import PostgresBackend


# Registry of available backends
BACKENDS: dict[str, Type[DatabaseBackend]] = {
    "postgres": PostgresBackend,
}

# Aliases for convenience
BACKEND_ALIASES: dict[str, str] = {
    "pg": "postgres",
    "postgresql": "postgres",
}


def get_backend(name: str, **connection: Any) -> DatabaseBackend:
    """
    Get a backend instance by name.

    Args:
        name: Backend name (postgres) or alias
        **connection: Connection parameters passed to the backend

    Returns:
        Configured backend instance

    Raises:
        ValueError: If backend name is unknown
    """
    # Resolve aliases
    resolved_name = BACKEND_ALIASES.get(name.lower(), name.lower())

    if resolved_name not in BACKENDS:
        available = list(BACKENDS.keys())
        raise ValueError(
            f"Unknown backend: {name}. Available backends: {available}"
        )

    backend_class = BACKENDS[resolved_name]
    return backend_class(**connection)


def list_backends() -> list[str]:
    """List available backend names."""
    return list(BACKENDS.keys())


__all__ = [
    "BACKENDS",
    "column_cast",
    "DatabaseBackend",
    "PostgresBackend",
    "get_backend",
    "list_backends",
    "qualified_table",
    "quote_ident",
]
