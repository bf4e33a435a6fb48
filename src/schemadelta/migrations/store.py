"""
Revision state records kept in the target database.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from ..adapters.base import AdapterError, DatabaseAdapter, transaction
from ..core.errors import InvalidSnapshot, StateStoreError
from ..core.snapshot import Snapshot
from ..utils import get_logger


@dataclass(frozen=True)
class RevisionRecord:
    revision: str
    name: str
    snapshot: Snapshot
    created_at: str = ""


class RevisionStore:
    """
    Persists the full schema snapshot of every generated revision so the next
    diff resumes from it.
    """

    def __init__(self, adapter: DatabaseAdapter, *, table: str = "schemadelta_revisions") -> None:
        self.adapter = adapter
        self.dialect = adapter.dialect
        self.table = table
        self.logger = get_logger("migrations.store")

    def _create_table(self) -> None:
        table = self.dialect.format_table(self.table)
        quote = self.dialect.quote_identifier
        sql = (
            f"CREATE TABLE IF NOT EXISTS {table} ("
            f"{quote('revision')} VARCHAR(32) NOT NULL PRIMARY KEY, "
            f"{quote('name')} VARCHAR(255) NOT NULL, "
            f"{quote('state')} TEXT NOT NULL, "
            f"{quote('created_at')} VARCHAR(40) NOT NULL"
            ")"
        )
        self.adapter.execute(sql)

    def latest(self) -> Optional[RevisionRecord]:
        rows = self._select("ORDER BY {revision} DESC LIMIT 1")
        return rows[0] if rows else None

    def get(self, revision: str) -> Optional[RevisionRecord]:
        placeholder = self.dialect.parameter_placeholder(1)
        rows = self._select(f"WHERE {{revision}} = {placeholder}", (revision,))
        return rows[0] if rows else None

    def history(self) -> List[RevisionRecord]:
        return self._select("ORDER BY {revision}")

    def save(
        self,
        record: RevisionRecord,
        *,
        base_revision: Optional[str] = None,
        replace_base: bool = False,
    ) -> None:
        """
        Insert ``record`` after discarding every record newer than
        ``base_revision``, which the new revision supersedes. With
        ``replace_base`` the base record itself is discarded too.

        The revision table is created on first save.
        """
        table = self.dialect.format_table(self.table)
        created_at = record.created_at or datetime.now(timezone.utc).isoformat(timespec="seconds")
        try:
            self._replace_newer(table, record, base_revision, created_at, replace_base)
        except AdapterError as exc:
            raise StateStoreError(f"Cannot store revision {record.revision}") from exc
        self.logger.info("Stored state for revision %s (%s)", record.revision, record.name)

    def _replace_newer(
        self,
        table: str,
        record: RevisionRecord,
        base_revision: Optional[str],
        created_at: str,
        replace_base: bool,
    ) -> None:
        quote = self.dialect.quote_identifier
        placeholders = ", ".join(self.dialect.parameter_placeholder(i) for i in range(1, 5))
        sign = ">=" if replace_base else ">"
        with transaction(self.adapter):
            self._create_table()
            self.adapter.execute(
                f"DELETE FROM {table} WHERE {quote('revision')} {sign} {self.dialect.parameter_placeholder(1)}",
                (base_revision or "",),
            )
            self.adapter.execute(
                f"INSERT INTO {table} ({quote('revision')}, {quote('name')}, {quote('state')}, "
                f"{quote('created_at')}) VALUES ({placeholders})",
                (record.revision, record.name, record.snapshot.to_json(indent=None), created_at),
            )

    def _select(self, clause: str, params: tuple = ()) -> List[RevisionRecord]:
        table = self.dialect.format_table(self.table)
        quote = self.dialect.quote_identifier
        columns = ", ".join(quote(col) for col in ("revision", "name", "state", "created_at"))
        sql = f"SELECT {columns} FROM {table} " + clause.format(revision=quote("revision"))
        try:
            if not self.adapter.table_exists(self.table):
                return []
            cursor = self.adapter.execute(sql, params)
            rows = cursor.fetchall()
        except AdapterError as exc:
            raise StateStoreError(f"Cannot read revision state from {self.table}") from exc
        return [self._record(row) for row in rows]

    def _record(self, row) -> RevisionRecord:
        revision, name, state, created_at = row[0], row[1], row[2], row[3]
        try:
            snapshot = Snapshot.from_json(state)
        except InvalidSnapshot as exc:
            raise StateStoreError(f"Stored state for revision {revision} is invalid: {exc}") from exc
        return RevisionRecord(revision=revision, name=name, snapshot=snapshot, created_at=created_at)

