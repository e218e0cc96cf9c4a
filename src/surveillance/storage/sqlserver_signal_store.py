"""
SQL Server-backed primary signal store.

This is the default primary store backend. Timestamps are stored in UTC
DATETIME2 columns.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..contracts.result_contracts import RetentionStats
from ..core.exceptions import StoreError
from ..core.types import SIGNAL_COLUMNS, Signal, SignalStatus
from .signal_store import SignalStore
from .sqlserver_common import connect, db_errors, is_valid_identifier, row_to_dict, to_sqlserver_value


logger = logging.getLogger(__name__)

SQLSERVER_COLUMN_TYPES = {
    "id": "NVARCHAR(36) NOT NULL PRIMARY KEY",
    "original_text": "NVARCHAR(MAX) NOT NULL",
    "translated_text": "NVARCHAR(MAX)",
    "location_country": "NVARCHAR(200) NOT NULL",
    "source_name": "NVARCHAR(200) NOT NULL",
    "priority": "NVARCHAR(2) NOT NULL",
    "status": "NVARCHAR(20) NOT NULL",
    "analyst_notes": "NVARCHAR(MAX)",
    "affected_population": "NVARCHAR(MAX)",
    "source_url": "NVARCHAR(2000)",
    "confidence_score": "FLOAT",
    "translation_confidence": "FLOAT",
    "lingua_fidelity_score": "FLOAT",
    "location_lat": "FLOAT",
    "location_lng": "FLOAT",
    "reported_cases": "INT",
    "reported_deaths": "INT",
    "cross_border_risk": "BIT",
    "source_timestamp": "DATETIME2",
    "triaged_at": "DATETIME2",
    "validated_at": "DATETIME2",
    "created_at": "DATETIME2 NOT NULL",
    "updated_at": "DATETIME2 NOT NULL",
}


class SqlServerSignalStore(SignalStore):
    """
    SQL Server implementation of the primary signal store.

    Holds one connection for the lifetime of the store; every mutation is a
    single statement committed on its own.
    """

    def __init__(self, connection_string: str, schema: str = "dbo", auto_init: bool = True):
        """
        Initialize the store.

        Args:
            connection_string: Full ODBC connection string
            schema: Schema holding the signals table
            auto_init: Whether to create the table if missing
        """
        if not is_valid_identifier(schema):
            raise ValueError(f"Invalid schema name: {schema}")

        self.schema = schema
        self.table = f"[{schema}].[signals]"
        self.conn = connect(connection_string)
        logger.debug(f"Connected to SQL Server signal store (schema: {schema})")

        if auto_init:
            self._init_schema()

    def _init_schema(self) -> None:
        column_defs = ",\n".join(
            f"{name} {SQLSERVER_COLUMN_TYPES.get(name, 'NVARCHAR(200)')}" for name in SIGNAL_COLUMNS
        )
        self._write(f"""
            IF OBJECT_ID(N'{self.schema}.signals', N'U') IS NULL
            BEGIN
                CREATE TABLE {self.table} (
                    {column_defs}
                )
                CREATE INDEX ix_signals_queue ON {self.table} (status, priority, created_at)
                CREATE INDEX ix_signals_validated_at ON {self.table} (status, validated_at)
            END
        """)
        logger.debug("Initialized SQL Server signal store schema")

    def _execute(self, sql: str, params: Sequence[Any] = ()):
        try:
            cursor = self.conn.cursor()
            cursor.execute(sql, *[to_sqlserver_value(p) for p in params])
            return cursor
        except db_errors() as e:
            self.conn.rollback()
            raise StoreError(f"Signal store query failed: {e}") from e

    def _write(self, sql: str, params: Sequence[Any] = ()) -> int:
        cursor = self._execute(sql, params)
        self.conn.commit()
        return cursor.rowcount

    def _fetch_signals(self, sql: str, params: Sequence[Any] = ()) -> List[Signal]:
        cursor = self._execute(sql, params)
        return [Signal.from_row(row_to_dict(cursor, row)) for row in cursor.fetchall()]

    def insert_signal(self, signal: Signal) -> None:
        data = signal.to_dict()
        placeholders = ", ".join("?" for _ in SIGNAL_COLUMNS)
        self._write(
            f"INSERT INTO {self.table} ({', '.join(SIGNAL_COLUMNS)}) VALUES ({placeholders})",
            [data[name] for name in SIGNAL_COLUMNS],
        )

    def get_signal(self, signal_id: str) -> Optional[Signal]:
        signals = self._fetch_signals(f"SELECT * FROM {self.table} WHERE id = ?", (signal_id,))
        return signals[0] if signals else None

    def fetch_untriaged(
        self,
        limit: int,
        priorities: Optional[Sequence[str]] = None,
    ) -> List[Signal]:
        sql = f"SELECT TOP (?) * FROM {self.table} WHERE status = ?"
        params: List[Any] = [limit, SignalStatus.NEW.value]
        if priorities:
            sql += f" AND priority IN ({', '.join('?' for _ in priorities)})"
            params.extend(priorities)
        sql += " ORDER BY priority ASC, created_at DESC"
        return self._fetch_signals(sql, params)

    def update_signal(self, signal_id: str, fields: Dict[str, Any]) -> bool:
        if not fields:
            return self.get_signal(signal_id) is not None
        unknown = [name for name in fields if name not in SIGNAL_COLUMNS or name == "id"]
        if unknown:
            raise ValueError(f"Cannot update columns: {', '.join(unknown)}")

        assignments = ", ".join(f"{name} = ?" for name in fields)
        params = list(fields.values()) + [signal_id]
        return self._write(f"UPDATE {self.table} SET {assignments} WHERE id = ?", params) > 0

    def delete_signal(self, signal_id: str) -> bool:
        return self._write(f"DELETE FROM {self.table} WHERE id = ?", (signal_id,)) > 0

    def delete_signals(self, signal_ids: Iterable[str]) -> int:
        ids = list(signal_ids)
        deleted = 0
        # SQL Server caps a statement at 2100 parameters.
        for start in range(0, len(ids), 1000):
            chunk = ids[start:start + 1000]
            deleted += self._write(
                f"DELETE FROM {self.table} WHERE id IN ({', '.join('?' for _ in chunk)})",
                chunk,
            )
        return deleted

    def fetch_archivable(self, cutoff: datetime, limit: int) -> List[Signal]:
        return self._fetch_signals(
            f"""
            SELECT TOP (?) * FROM {self.table}
            WHERE status IN (?, ?)
              AND validated_at IS NOT NULL
              AND validated_at < ?
            ORDER BY validated_at ASC
            """,
            (limit, SignalStatus.VALIDATED.value, SignalStatus.DISMISSED.value, cutoff),
        )

    def delete_stale(self, cutoff: datetime) -> int:
        return self._write(
            f"DELETE FROM {self.table} WHERE created_at < ? AND status <> ?",
            (cutoff, SignalStatus.VALIDATED.value),
        )

    def list_stale(self, cutoff: datetime) -> List[Signal]:
        return self._fetch_signals(
            f"SELECT * FROM {self.table} WHERE created_at < ? AND status <> ? ORDER BY created_at ASC",
            (cutoff, SignalStatus.VALIDATED.value),
        )

    def retention_stats(self) -> RetentionStats:
        cursor = self._execute(f"""
            SELECT CONVERT(VARCHAR(10), created_at, 23) AS day, status, COUNT(*) AS count
            FROM {self.table}
            GROUP BY CONVERT(VARCHAR(10), created_at, 23), status
        """)
        return RetentionStats.from_counts({(row[0], row[1]): row[2] for row in cursor.fetchall()})

    def count_validated(self) -> int:
        cursor = self._execute(
            f"SELECT COUNT(*) FROM {self.table} WHERE status = ?",
            (SignalStatus.VALIDATED.value,),
        )
        return cursor.fetchone()[0]

    def count_by_status(self) -> Dict[str, int]:
        cursor = self._execute(f"SELECT status, COUNT(*) FROM {self.table} GROUP BY status")
        return {row[0]: row[1] for row in cursor.fetchall()}

    def count_by_priority(self) -> Dict[str, int]:
        cursor = self._execute(f"SELECT priority, COUNT(*) FROM {self.table} GROUP BY priority")
        return {row[0]: row[1] for row in cursor.fetchall()}

    def list_for_dedupe(self) -> List[Dict[str, Any]]:
        cursor = self._execute(
            f"SELECT id, original_text, created_at FROM {self.table} ORDER BY created_at ASC, id ASC"
        )
        return [row_to_dict(cursor, row) for row in cursor.fetchall()]

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.debug("Closed SQL Server signal store")
