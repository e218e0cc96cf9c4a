"""
SQLite-backed archive store for local runs and tests.
"""

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..core.exceptions import StoreError
from ..core.types import ARCHIVE_COLUMNS, ARCHIVE_MUTABLE_COLUMNS, Signal
from ..core.utils import to_db_timestamp
from .archive_store import ARCHIVE_INDEXES, ARCHIVE_TABLE, ArchiveStore, archive_projection
from .sqlite_signal_store import sqlite_column_type, to_sql_value


logger = logging.getLogger(__name__)


class SqliteArchiveStore(ArchiveStore):
    """
    SQLite implementation of the archive store.

    Uses ``INSERT ... ON CONFLICT(id) DO UPDATE`` for the upsert.
    """

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = db_path if str(db_path) == ":memory:" else Path(db_path)
        self.conn = None

    def open(self) -> None:
        if self.conn is not None:
            return
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        logger.debug(f"Opened SQLite archive store: {self.db_path}")

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def _require_conn(self) -> sqlite3.Connection:
        if self.conn is None:
            raise StoreError("Archive store is not open")
        return self.conn

    def ensure_schema(self) -> None:
        conn = self._require_conn()
        column_defs = ["id TEXT PRIMARY KEY"]
        column_defs += [f"{name} {sqlite_column_type(name)}" for name in ARCHIVE_COLUMNS if name != "id"]
        column_defs.append("synced_at TEXT NOT NULL")

        try:
            cursor = conn.cursor()
            cursor.execute(f"CREATE TABLE IF NOT EXISTS {ARCHIVE_TABLE} ({', '.join(column_defs)})")
            for index_name, column in ARCHIVE_INDEXES.items():
                cursor.execute(f"CREATE INDEX IF NOT EXISTS {index_name} ON {ARCHIVE_TABLE} ({column})")
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(f"Failed to create archive schema: {e}") from e

    def upsert(self, signal: Signal, synced_at: datetime) -> None:
        conn = self._require_conn()
        projection = archive_projection(signal)
        columns = list(ARCHIVE_COLUMNS) + ["synced_at"]
        values = [to_sql_value(projection[name]) for name in ARCHIVE_COLUMNS]
        values.append(to_db_timestamp(synced_at))

        updates = ", ".join(f"{name} = excluded.{name}" for name in ARCHIVE_MUTABLE_COLUMNS + ["synced_at"])
        sql = (
            f"INSERT INTO {ARCHIVE_TABLE} ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)}) "
            f"ON CONFLICT(id) DO UPDATE SET {updates}"
        )
        try:
            conn.execute(sql, values)
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(f"Archive upsert failed for {signal.id}: {e}") from e

    def get(self, signal_id: str) -> Optional[Dict[str, Any]]:
        row = self._require_conn().execute(
            f"SELECT * FROM {ARCHIVE_TABLE} WHERE id = ?", (signal_id,)
        ).fetchone()
        return dict(row) if row else None

    def count(self) -> int:
        return self._require_conn().execute(f"SELECT COUNT(*) FROM {ARCHIVE_TABLE}").fetchone()[0]
