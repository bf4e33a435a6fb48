"""
SQLite adapter backing the revision store and local migration runs.
"""

from __future__ import annotations

import sqlite3
from typing import Any, Optional, Sequence

from ..dialects.sqlite import SQLiteDialect
from ..utils import get_logger, time_call
from .base import AdapterConnectionError, AdapterExecutionError, ConnectionConfig, redact_params

MEMORY_URLS = ("sqlite:///:memory:", "sqlite://")


def sqlite_path(url: str) -> str:
    """
    File path (or ``:memory:``) named by a ``sqlite:///`` URL, query string removed.
    """
    url = url.split("?", 1)[0]
    if url in MEMORY_URLS:
        return ":memory:"
    prefix = "sqlite:///"
    if url.startswith(prefix):
        return url[len(prefix) :]
    return url


class SQLiteAdapter:
    """
    Wraps :mod:`sqlite3` in autocommit mode; ``begin`` opens an explicit
    transaction so DDL and revision bookkeeping commit together. Foreign key
    enforcement is suspended inside a transaction and verified on commit.
    """

    def __init__(self) -> None:
        self.dialect = SQLiteDialect()
        self.logger = get_logger("adapters.sqlite")
        self._connection: Optional[sqlite3.Connection] = None

    def connect(self, config: ConnectionConfig) -> sqlite3.Connection:
        path = sqlite_path(config.url)
        try:
            connection = sqlite3.connect(
                path,
                isolation_level=None,
                timeout=config.timeout if config.timeout is not None else 5.0,
                check_same_thread=False,
            )
        except sqlite3.Error as exc:
            raise AdapterConnectionError(f"Cannot open SQLite database {path}: {exc}") from exc
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON")
        self.logger.debug("Opened SQLite database %s", path)
        self._connection = connection
        return connection

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise AdapterConnectionError("SQLiteAdapter is not connected.")
        return self._connection

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> sqlite3.Cursor:
        cursor = self.connection.cursor()
        params = tuple(params or ())
        try:
            with time_call("sqlite.execute", self.logger):
                cursor.execute(sql, params)
        except sqlite3.Error as exc:
            raise AdapterExecutionError(f"SQLite rejected statement: {exc}") from exc
        self.logger.debug("SQL executed", extra={"sql": sql, "params": redact_params(params)})
        return cursor

    def table_exists(self, name: str) -> bool:
        cursor = self.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (name,)
        )
        return cursor.fetchone() is not None

    def begin(self) -> None:
        connection = self.connection
        if not connection.in_transaction:
            # table rebuilds drop and recreate referenced tables; references
            # are checked once, at commit
            connection.execute("PRAGMA foreign_keys = OFF")
            connection.execute("BEGIN")

    def commit(self) -> None:
        connection = self.connection
        if connection.in_transaction:
            violations = connection.execute("PRAGMA foreign_key_check").fetchall()
            if violations:
                self.rollback()
                tables = sorted({row[0] for row in violations})
                raise AdapterExecutionError(
                    f"Transaction rolled back; foreign key violations in {', '.join(tables)}"
                )
            connection.commit()
        connection.execute("PRAGMA foreign_keys = ON")

    def rollback(self) -> None:
        connection = self.connection
        connection.rollback()
        connection.execute("PRAGMA foreign_keys = ON")
