"""SQLite persistence for credential records.

Table layout
------------
password_entries(
  id TEXT PRIMARY KEY NOT NULL,
  title TEXT NOT NULL,
  username TEXT NOT NULL,
  password TEXT NOT NULL,
  website TEXT,
  email TEXT,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
)

Optional fields are stored as ``''`` when absent. Every write is a single
parameterized statement followed by a full reload, so
:attr:`RecordRepository.records` always mirrors the table as of the last
successful load.
"""

from __future__ import annotations

import logging
import os
import sqlite3
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, Union

from .models import COLUMNS, MUTABLE_FIELDS, CredentialRecord

logger = logging.getLogger(__name__)

MEMORY = ":memory:"

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS password_entries (
  id TEXT PRIMARY KEY NOT NULL,
  title TEXT NOT NULL,
  username TEXT NOT NULL,
  password TEXT NOT NULL,
  website TEXT,
  email TEXT,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
)
"""

_SELECT_ALL = (
    f"SELECT {', '.join(COLUMNS)} FROM password_entries ORDER BY created_at DESC"
)
_INSERT = (
    f"INSERT INTO password_entries ({', '.join(COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in COLUMNS)})"
)
_UPDATE = (
    "UPDATE password_entries SET "
    + ", ".join(f"{name} = ?" for name in MUTABLE_FIELDS)
    + ", updated_at = ? WHERE id = ?"
)
_DELETE = "DELETE FROM password_entries WHERE id = ?"


class StorageError(Exception):
    """Raised when the database cannot be read or written."""


class SqliteClient:
    """Thin client over one SQLite database file.

    Each :meth:`execute` runs in its own transaction. All driver errors are
    re-raised as :class:`StorageError`.
    """

    def __init__(self, path: Union[Path, str]) -> None:
        self.path = path if str(path) == MEMORY else Path(path)
        self._conn: Optional[sqlite3.Connection] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def exists(self) -> bool:
        return self.path == MEMORY or Path(self.path).exists()

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run one statement and commit; returns the affected row count."""
        try:
            conn = self._connect()
            with conn:
                cursor = conn.execute(sql, tuple(params))
            return cursor.rowcount
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"Database write failed: {exc}") from exc

    def select(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Run a query and return every row as a column -> value mapping."""
        try:
            conn = self._connect()
            rows = conn.execute(sql, tuple(params)).fetchall()
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"Database read failed: {exc}") from exc
        return [dict(row) for row in rows]

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> SqliteClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        if self._conn is not None:
            return self._conn

        if self.path == MEMORY:
            conn = sqlite3.connect(MEMORY)
        else:
            path = Path(self.path)
            if not path.exists():
                path.parent.mkdir(parents=True, exist_ok=True)
                # Passwords are stored in plaintext: owner read/write only
                path.touch(mode=0o600)
                os.chmod(path, 0o600)
            conn = sqlite3.connect(path)
            logger.debug("Opened database %s", path)

        conn.row_factory = sqlite3.Row
        self._conn = conn
        return conn


class RecordRepository:
    """Owns the in-memory snapshot of ``password_entries``."""

    def __init__(self, client: SqliteClient) -> None:
        self.client = client
        self.records: tuple[CredentialRecord, ...] = ()

    def ensure_schema(self) -> None:
        """Create the table if it does not exist yet. Safe to call repeatedly."""
        self.client.execute(_CREATE_TABLE)

    def load_all(self) -> tuple[CredentialRecord, ...]:
        """Reload every record, newest first.

        On failure the previous snapshot is kept and :class:`StorageError`
        propagates.
        """
        try:
            self.ensure_schema()
            rows = self.client.select(_SELECT_ALL)
            records = tuple(CredentialRecord.model_validate(row) for row in rows)
        except StorageError:
            logger.error("Loading records failed; keeping previous snapshot", exc_info=True)
            raise
        except ValueError as exc:
            # Row contents that do not fit the record model (pydantic errors
            # subclass ValueError).
            logger.error("Stored records are malformed", exc_info=True)
            raise StorageError(f"Stored records are malformed: {exc}") from exc

        self.records = records
        logger.debug("Loaded %d record(s)", len(records))
        return records

    def get(self, record_id: str) -> Optional[CredentialRecord]:
        """Return the record with *record_id* from the current snapshot."""
        for record in self.records:
            if record.id == record_id:
                return record
        return None

    def create(self, record: CredentialRecord, reload: bool = True) -> None:
        self._write(_INSERT, record.to_row(), "create", record.id, reload)

    def update(
        self,
        record_id: str,
        fields: Mapping[str, Optional[str]],
        updated_at: str,
        reload: bool = True,
    ) -> None:
        """Replace the mutable fields of *record_id* and stamp *updated_at*.

        Fields missing from *fields* keep their current snapshot value. An
        unknown id is a no-op.
        """
        current = self.get(record_id)
        values = []
        for name in MUTABLE_FIELDS:
            if name in fields:
                value = fields[name]
            elif current is not None:
                value = getattr(current, name)
            else:
                value = None
            values.append(value or "")
        self._write(_UPDATE, (*values, updated_at, record_id), "update", record_id, reload)

    def delete(self, record_id: str, reload: bool = True) -> None:
        """Remove *record_id* permanently. An unknown id is a no-op."""
        self._write(_DELETE, (record_id,), "delete", record_id, reload)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _write(self, sql: str, params: Sequence[Any], action: str, record_id: str, reload: bool) -> None:
        try:
            self.ensure_schema()
            affected = self.client.execute(sql, params)
        except StorageError:
            logger.error("Failed to %s record %s", action, record_id, exc_info=True)
            raise
        if affected == 0:
            logger.debug("%s of %s matched no rows", action.capitalize(), record_id)
        else:
            logger.debug("%sd record %s", action.capitalize(), record_id)
        if reload:
            self.load_all()
