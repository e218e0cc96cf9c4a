"""
Shared helpers for the SQL Server stores.

pyodbc is imported lazily so SQLite-backed runs work without an ODBC
driver manager installed.
"""

import logging
import re
from datetime import datetime
from enum import Enum
from typing import Any

try:
    import pyodbc
except ImportError:
    pyodbc = None

from ..core.exceptions import StoreError
from ..core.utils import ensure_utc


logger = logging.getLogger(__name__)

_IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_RESERVED_WORDS = {
    "select", "insert", "update", "delete", "drop", "create", "alter",
    "exec", "execute", "union", "where", "from", "table", "database",
    "schema", "index", "grant", "revoke", "truncate", "declare", "set",
}


def is_valid_identifier(name: str) -> bool:
    """
    Validate that a name is a safe SQL identifier.

    Schema names are interpolated into DDL, so only letters, digits and
    underscores are accepted (max 128 characters, no reserved words).
    """
    if not name or len(name) > 128:
        return False
    if not _IDENTIFIER_PATTERN.match(name):
        return False
    return name.lower() not in _RESERVED_WORDS


def connect(connection_string: str):
    """Open a pyodbc connection with autocommit off."""
    if pyodbc is None:
        raise StoreError("pyodbc is required for the SQL Server stores. Install with: pip install pyodbc")
    try:
        return pyodbc.connect(connection_string, autocommit=False)
    except pyodbc.Error as e:
        logger.error(f"Failed to connect to SQL Server: {e}")
        raise StoreError(f"Failed to connect to SQL Server: {e}") from e


def db_errors() -> tuple:
    """Exception types raised by the driver (empty when pyodbc is absent)."""
    return (pyodbc.Error,) if pyodbc is not None else ()


def to_sqlserver_value(value: Any) -> Any:
    """Convert a Python value to a pyodbc parameter; datetimes become naive UTC for DATETIME2."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return ensure_utc(value).replace(tzinfo=None)
    return value


def row_to_dict(cursor, row) -> dict:
    columns = [column[0] for column in cursor.description]
    return dict(zip(columns, row))
