"""
Database adapter interfaces and implementations.
"""

from __future__ import annotations

from .base import (
    AdapterConfigurationError,
    AdapterConnectionError,
    AdapterError,
    AdapterExecutionError,
    ConnectionConfig,
    DatabaseAdapter,
    transaction,
)
from .postgres import PostgresAdapter
from .sqlite import SQLiteAdapter

_ADAPTERS = {
    "sqlite": SQLiteAdapter,
    "postgres": PostgresAdapter,
    "postgresql": PostgresAdapter,
}


def connect(config: ConnectionConfig) -> DatabaseAdapter:
    """
    Pick the adapter for the DSN scheme and open a connection.
    """
    try:
        factory = _ADAPTERS[config.scheme]
    except KeyError as exc:
        raise AdapterConfigurationError(
            f"No adapter for scheme '{config.scheme}' ({config.redacted_dsn()})"
        ) from exc
    adapter = factory()
    adapter.connect(config)
    return adapter


__all__ = [
    "ConnectionConfig",
    "DatabaseAdapter",
    "AdapterError",
    "AdapterConfigurationError",
    "AdapterConnectionError",
    "AdapterExecutionError",
    "PostgresAdapter",
    "SQLiteAdapter",
    "connect",
    "transaction",
]
