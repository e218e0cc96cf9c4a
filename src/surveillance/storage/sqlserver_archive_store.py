"""
SQL Server-backed archive store.

Connections always use TLS (``Encrypt=yes;TrustServerCertificate=no``);
see SqlServerConnectionConfig.get_connection_string.
"""

import dataclasses
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from ..config.settings import SqlServerConnectionConfig
from ..core.exceptions import StoreError
from ..core.types import ARCHIVE_COLUMNS, ARCHIVE_MUTABLE_COLUMNS, Signal
from .archive_store import ARCHIVE_INDEXES, ARCHIVE_TABLE, ArchiveStore, archive_projection
from .sqlserver_common import connect, db_errors, is_valid_identifier, row_to_dict, to_sqlserver_value
from .sqlserver_signal_store import SQLSERVER_COLUMN_TYPES


logger = logging.getLogger(__name__)


class SqlServerArchiveStore(ArchiveStore):
    """
    SQL Server implementation of the archive store, upserting with MERGE.
    """

    def __init__(self, connection: SqlServerConnectionConfig):
        if not is_valid_identifier(connection.schema):
            raise ValueError(f"Invalid schema name: {connection.schema}")
        self.connection_string = dataclasses.replace(connection, encrypt=True).get_connection_string()
        self.schema = connection.schema
        self.table = f"[{self.schema}].[{ARCHIVE_TABLE}]"
        self.conn = None

    def open(self) -> None:
        if self.conn is None:
            self.conn = connect(self.connection_string)
            logger.debug(f"Opened SQL Server archive store (schema: {self.schema})")

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def _require_conn(self):
        if self.conn is None:
            raise StoreError("Archive store is not open")
        return self.conn

    def ensure_schema(self) -> None:
        conn = self._require_conn()
        column_defs = []
        for name in ARCHIVE_COLUMNS:
            column_type = SQLSERVER_COLUMN_TYPES.get(name, "NVARCHAR(200)")
            if name != "id":
                column_type = column_type.replace(" NOT NULL", "")
            column_defs.append(f"{name} {column_type}")
        column_defs.append("synced_at DATETIME2 NOT NULL")

        statements = [f"""
            IF OBJECT_ID(N'{self.schema}.{ARCHIVE_TABLE}', N'U') IS NULL
            BEGIN
                CREATE TABLE {self.table} ({', '.join(column_defs)})
            END
        """]
        for index_name, column in ARCHIVE_INDEXES.items():
            statements.append(f"""
                IF NOT EXISTS (SELECT * FROM sys.indexes
                               WHERE name = '{index_name}'
                               AND object_id = OBJECT_ID('{self.table}'))
                BEGIN
                    CREATE INDEX {index_name} ON {self.table} ({column})
                END
            """)

        try:
            cursor = conn.cursor()
            for statement in statements:
                cursor.execute(statement)
            conn.commit()
        except db_errors() as e:
            conn.rollback()
            raise StoreError(f"Failed to create archive schema: {e}") from e

    def upsert(self, signal: Signal, synced_at: datetime) -> None:
        conn = self._require_conn()
        projection = archive_projection(signal)
        columns = list(ARCHIVE_COLUMNS) + ["synced_at"]
        values = [to_sqlserver_value(projection[name]) for name in ARCHIVE_COLUMNS]
        values.append(to_sqlserver_value(synced_at))

        source_columns = ", ".join(f"? AS {name}" for name in columns)
        updates = ", ".join(
            f"{name} = source.{name}" for name in ARCHIVE_MUTABLE_COLUMNS + ["synced_at"]
        )
        sql = f"""
            MERGE {self.table} AS target
            USING (SELECT {source_columns}) AS source
            ON target.id = source.id
            WHEN MATCHED THEN
                UPDATE SET {updates}
            WHEN NOT MATCHED THEN
                INSERT ({', '.join(columns)})
                VALUES ({', '.join(f'source.{name}' for name in columns)});
        """
        try:
            conn.cursor().execute(sql, *values)
            conn.commit()
        except db_errors() as e:
            conn.rollback()
            raise StoreError(f"Archive upsert failed for {signal.id}: {e}") from e

    def get(self, signal_id: str) -> Optional[Dict[str, Any]]:
        cursor = self._require_conn().cursor()
        cursor.execute(f"SELECT * FROM {self.table} WHERE id = ?", signal_id)
        row = cursor.fetchone()
        return row_to_dict(cursor, row) if row else None

    def count(self) -> int:
        cursor = self._require_conn().cursor()
        cursor.execute(f"SELECT COUNT(*) FROM {self.table}")
        return cursor.fetchone()[0]
