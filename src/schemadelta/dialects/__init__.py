"""
Dialect strategy registry.
"""

from __future__ import annotations

from .base import Dialect, DialectCapabilities
from .mysql import MySQLDialect
from .postgres import PostgresDialect
from .sqlite import SQLiteDialect

_DIALECTS = {
    "sqlite": SQLiteDialect,
    "postgresql": PostgresDialect,
    "postgres": PostgresDialect,
    "mysql": MySQLDialect,
}


def get_dialect(name: str) -> Dialect:
    """
    Look up a dialect by name (``sqlite``, ``postgresql``/``postgres``, ``mysql``).
    """
    try:
        factory = _DIALECTS[name.lower()]
    except KeyError as exc:
        choices = ", ".join(sorted(_DIALECTS))
        raise ValueError(f"Unknown dialect '{name}' (choose from {choices})") from exc
    return factory()


def dialect_for_url(url: str) -> Dialect:
    scheme = url.split(":", 1)[0].split("+", 1)[0]
    return get_dialect(scheme)


__all__ = [
    "Dialect",
    "DialectCapabilities",
    "SQLiteDialect",
    "PostgresDialect",
    "MySQLDialect",
    "dialect_for_url",
    "get_dialect",
]
