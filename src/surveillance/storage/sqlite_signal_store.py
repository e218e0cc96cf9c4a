"""
SQLite-backed primary signal store.

Intended for local runs and tests. Timestamps are stored as fixed-width UTC
ISO-8601 text, so lexical comparison and ordering match chronological order
and the first ten characters are the UTC calendar date.
"""

import logging
import sqlite3
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from ..contracts.result_contracts import RetentionStats
from ..core.exceptions import StoreError
from ..core.types import SIGNAL_COLUMNS, Signal, SignalStatus
from ..core.utils import to_db_timestamp
from .signal_store import SignalStore


logger = logging.getLogger(__name__)

_REAL_COLUMNS = {
    "confidence_score",
    "translation_confidence",
    "lingua_fidelity_score",
    "location_lat",
    "location_lng",
}
_INTEGER_COLUMNS = {"reported_cases", "reported_deaths", "cross_border_risk"}
_REQUIRED_COLUMNS = {"original_text", "location_country", "source_name", "status", "priority", "created_at"}

# SQLite's default limit on host parameters is 999.
_DELETE_CHUNK = 500


def sqlite_column_type(name: str) -> str:
    if name in _REAL_COLUMNS:
        return "REAL"
    if name in _INTEGER_COLUMNS:
        return "INTEGER"
    return "TEXT"


def to_sql_value(value: Any) -> Any:
    """Convert a Python value to its stored text-store representation."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return to_db_timestamp(value)
    if isinstance(value, bool):
        return int(value)
    return value


class SqliteSignalStore(SignalStore):
    """
    SQLite implementation of the primary signal store.

    Example:
        >>> store = SqliteSignalStore(Path("local/state/signals.db"))
        >>> store.insert_signal(Signal(original_text="...", location_country="Uganda", source_name="WHO"))
        >>> len(store.fetch_untriaged(limit=10))
        1
    """

    def __init__(self, db_path: Union[str, Path], auto_init: bool = True):
        """
        Initialize the store.

        Args:
            db_path: Path to the SQLite database file (or ":memory:")
            auto_init: Whether to create the table automatically
        """
        self.db_path = db_path if str(db_path) == ":memory:" else Path(db_path)
        self.conn = None
        self._connect()

        if auto_init:
            self._init_schema()

    def _connect(self) -> None:
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        logger.debug(f"Connected to SQLite signal store: {self.db_path}")

    def _init_schema(self) -> None:
        column_defs = []
        for name in SIGNAL_COLUMNS:
            if name == "id":
                column_defs.append("id TEXT PRIMARY KEY")
                continue
            nullability = " NOT NULL" if name in _REQUIRED_COLUMNS else ""
            column_defs.append(f"{name} {sqlite_column_type(name)}{nullability}")

        cursor = self.conn.cursor()
        cursor.execute(f"CREATE TABLE IF NOT EXISTS signals ({', '.join(column_defs)})")
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS ix_signals_queue
            ON signals (status, priority, created_at)
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS ix_signals_validated_at
            ON signals (status, validated_at)
        """)
        self.conn.commit()
        logger.debug("Initialized signal store schema")

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        try:
            cursor = self.conn.cursor()
            cursor.execute(sql, tuple(params))
            return cursor
        except sqlite3.Error as e:
            self.conn.rollback()
            raise StoreError(f"Signal store query failed: {e}") from e

    def _write(self, sql: str, params: Sequence[Any] = ()) -> int:
        cursor = self._execute(sql, params)
        self.conn.commit()
        return cursor.rowcount

    @staticmethod
    def _to_signal(row: sqlite3.Row) -> Signal:
        return Signal.from_row(dict(row))

    def insert_signal(self, signal: Signal) -> None:
        data = signal.to_dict()
        placeholders = ", ".join("?" for _ in SIGNAL_COLUMNS)
        self._write(
            f"INSERT INTO signals ({', '.join(SIGNAL_COLUMNS)}) VALUES ({placeholders})",
            [to_sql_value(data[name]) for name in SIGNAL_COLUMNS],
        )

    def get_signal(self, signal_id: str) -> Optional[Signal]:
        row = self._execute("SELECT * FROM signals WHERE id = ?", (signal_id,)).fetchone()
        return self._to_signal(row) if row else None

    def fetch_untriaged(
        self,
        limit: int,
        priorities: Optional[Sequence[str]] = None,
    ) -> List[Signal]:
        sql = "SELECT * FROM signals WHERE status = ?"
        params: List[Any] = [SignalStatus.NEW.value]
        if priorities:
            sql += f" AND priority IN ({', '.join('?' for _ in priorities)})"
            params.extend(to_sql_value(p) for p in priorities)
        sql += " ORDER BY priority ASC, created_at DESC LIMIT ?"
        params.append(limit)

        return [self._to_signal(row) for row in self._execute(sql, params).fetchall()]

    def update_signal(self, signal_id: str, fields: Dict[str, Any]) -> bool:
        if not fields:
            return self.get_signal(signal_id) is not None
        unknown = [name for name in fields if name not in SIGNAL_COLUMNS or name == "id"]
        if unknown:
            raise ValueError(f"Cannot update columns: {', '.join(unknown)}")

        assignments = ", ".join(f"{name} = ?" for name in fields)
        params = [to_sql_value(value) for value in fields.values()] + [signal_id]
        return self._write(f"UPDATE signals SET {assignments} WHERE id = ?", params) > 0

    def delete_signal(self, signal_id: str) -> bool:
        return self._write("DELETE FROM signals WHERE id = ?", (signal_id,)) > 0

    def delete_signals(self, signal_ids: Iterable[str]) -> int:
        ids = list(signal_ids)
        deleted = 0
        for start in range(0, len(ids), _DELETE_CHUNK):
            chunk = ids[start:start + _DELETE_CHUNK]
            deleted += self._write(
                f"DELETE FROM signals WHERE id IN ({', '.join('?' for _ in chunk)})",
                chunk,
            )
        return deleted

    def fetch_archivable(self, cutoff: datetime, limit: int) -> List[Signal]:
        rows = self._execute(
            """
            SELECT * FROM signals
            WHERE status IN (?, ?)
              AND validated_at IS NOT NULL
              AND validated_at < ?
            ORDER BY validated_at ASC
            LIMIT ?
            """,
            (SignalStatus.VALIDATED.value, SignalStatus.DISMISSED.value, to_db_timestamp(cutoff), limit),
        ).fetchall()
        return [self._to_signal(row) for row in rows]

    def delete_stale(self, cutoff: datetime) -> int:
        return self._write(
            "DELETE FROM signals WHERE created_at < ? AND status != ?",
            (to_db_timestamp(cutoff), SignalStatus.VALIDATED.value),
        )

    def list_stale(self, cutoff: datetime) -> List[Signal]:
        rows = self._execute(
            "SELECT * FROM signals WHERE created_at < ? AND status != ? ORDER BY created_at ASC",
            (to_db_timestamp(cutoff), SignalStatus.VALIDATED.value),
        ).fetchall()
        return [self._to_signal(row) for row in rows]

    def retention_stats(self) -> RetentionStats:
        rows = self._execute("""
            SELECT substr(created_at, 1, 10) AS day, status, COUNT(*) AS count
            FROM signals
            GROUP BY day, status
        """).fetchall()
        return RetentionStats.from_counts({(row["day"], row["status"]): row["count"] for row in rows})

    def count_validated(self) -> int:
        row = self._execute(
            "SELECT COUNT(*) FROM signals WHERE status = ?",
            (SignalStatus.VALIDATED.value,),
        ).fetchone()
        return row[0]

    def count_by_status(self) -> Dict[str, int]:
        rows = self._execute("SELECT status, COUNT(*) FROM signals GROUP BY status").fetchall()
        return {row[0]: row[1] for row in rows}

    def count_by_priority(self) -> Dict[str, int]:
        rows = self._execute("SELECT priority, COUNT(*) FROM signals GROUP BY priority").fetchall()
        return {row[0]: row[1] for row in rows}

    def list_for_dedupe(self) -> List[Dict[str, Any]]:
        rows = self._execute(
            "SELECT id, original_text, created_at FROM signals ORDER BY created_at ASC, id ASC"
        ).fetchall()
        return [dict(row) for row in rows]

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.debug("Closed SQLite signal store")
