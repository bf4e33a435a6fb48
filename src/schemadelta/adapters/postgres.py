"""
PostgreSQL adapter backed by psycopg.
"""

from __future__ import annotations

import re
from typing import Any, Optional, Sequence

from ..dialects.postgres import PostgresDialect
from ..utils import get_logger, time_call
from ..utils.logging import resolve_slow_ms
from .base import (
    AdapterConfigurationError,
    AdapterConnectionError,
    AdapterExecutionError,
    ConnectionConfig,
    redact_params,
)

# "%%" is an escaped percent sign, not a placeholder
_PLACEHOLDER_RE = re.compile(r"%%|%s")


def _load_driver():
    try:
        import psycopg

        return psycopg
    except ImportError:
        return None


def count_placeholders(sql: str) -> int:
    return sum(1 for match in _PLACEHOLDER_RE.finditer(sql) if match.group() == "%s")


class PostgresAdapter:
    """
    Holds one psycopg connection and reconnects transparently when the
    server closed it between statements.
    """

    def __init__(self, slow_query_ms: int | None = None) -> None:
        self.dialect = PostgresDialect()
        self.logger = get_logger("adapters.postgres")
        self.slow_query_ms = resolve_slow_ms(default=100, override=slow_query_ms)
        self._connection: Any = None
        self._config: Optional[ConnectionConfig] = None

    def connect(self, config: ConnectionConfig) -> Any:
        driver = _load_driver()
        if driver is None:
            raise AdapterConfigurationError(
                "psycopg is required for PostgreSQL state stores (pip install schemadelta[postgres])."
            )
        options = dict(config.options)
        if config.timeout and "connect_timeout" not in options:
            options["connect_timeout"] = int(config.timeout)

        self.logger.info(
            "Connecting to PostgreSQL %s (autocommit=%s)",
            config.descriptive_label(),
            config.autocommit,
        )
        try:
            connection = driver.connect(config.connection_url(), **options)
        except Exception as exc:
            raise AdapterConnectionError(
                f"Failed to connect to PostgreSQL at {config.redacted_dsn()}."
            ) from exc
        connection.autocommit = bool(config.autocommit)
        self._connection = connection
        self._config = config
        return connection

    def close(self) -> None:
        connection, self._connection = self._connection, None
        if connection is not None:
            connection.close()

    def _live_connection(self) -> Any:
        if self._connection is None or self._config is None:
            raise AdapterConnectionError("PostgresAdapter is not connected.")
        if getattr(self._connection, "closed", False):
            self.logger.warning("PostgreSQL connection closed; reconnecting.")
            self.connect(self._config)
        return self._connection

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> Any:
        params = tuple(params or ())
        expected = count_placeholders(sql)
        if expected != len(params):
            raise AdapterExecutionError(
                f"Parameter count mismatch: expected {expected}, received {len(params)}."
            )
        cursor = self._live_connection().cursor()
        try:
            with time_call("postgres.execute", self.logger, threshold_ms=self.slow_query_ms):
                cursor.execute(sql, params or None)
        except Exception as exc:
            raise AdapterExecutionError(f"PostgreSQL rejected statement: {exc}") from exc
        self.logger.debug("SQL executed", extra={"sql": sql, "params": redact_params(params)})
        return cursor

    def table_exists(self, name: str) -> bool:
        schema, _, table = name.rpartition(".")
        if schema:
            cursor = self.execute(
                "SELECT 1 FROM information_schema.tables WHERE table_schema = %s AND table_name = %s",
                (schema, table),
            )
        else:
            cursor = self.execute(
                "SELECT 1 FROM information_schema.tables "
                "WHERE table_schema = ANY(current_schemas(false)) AND table_name = %s",
                (table,),
            )
        return cursor.fetchone() is not None

    def begin(self) -> None:
        # psycopg opens the transaction on the first statement
        self._live_connection()

    def commit(self) -> None:
        self._live_connection().commit()

    def rollback(self) -> None:
        self._live_connection().rollback()
