"""
Primary and archive store implementations.

The default backend for both stores is SQL Server. SQLite is available for
local runs and tests; select it with ``SIGNAL_STORE_BACKEND=sqlite`` and
``ARCHIVE_STORE_BACKEND=sqlite``.
"""

import logging
from pathlib import Path

from ..config.settings import SurveillanceConfig
from ..core.exceptions import ConfigError
from .archive_store import ArchiveStore, archive_projection
from .signal_store import SignalStore
from .sqlite_archive_store import SqliteArchiveStore
from .sqlite_signal_store import SqliteSignalStore


logger = logging.getLogger(__name__)

BACKEND_SQLSERVER = "sqlserver"
BACKEND_SQLITE = "sqlite"


# Lazy imports keep pyodbc optional for SQLite-only runs
def _get_sqlserver_signal_store():
    from .sqlserver_signal_store import SqlServerSignalStore
    return SqlServerSignalStore


def _get_sqlserver_archive_store():
    from .sqlserver_archive_store import SqlServerArchiveStore
    return SqlServerArchiveStore


def create_signal_store(config: SurveillanceConfig) -> SignalStore:
    """
    Create the primary signal store selected by ``store.backend``.

    Raises:
        ConfigError: If the backend is unknown or SQL Server parameters are missing
    """
    backend = config.get("store.backend", BACKEND_SQLSERVER)

    if backend == BACKEND_SQLITE:
        return SqliteSignalStore(Path(config.get("store.path", "local/state/signals.db")))

    if backend == BACKEND_SQLSERVER:
        connection = config.get_store_connection()
        missing = connection.missing_fields()
        if missing:
            raise ConfigError(
                f"Signal store connection not configured: missing {', '.join(missing)}",
                missing=missing,
            )
        SqlServerSignalStore = _get_sqlserver_signal_store()
        return SqlServerSignalStore(connection.get_connection_string(), schema=connection.schema)

    raise ConfigError(
        f"Unknown store backend: {backend}. Supported backends: 'sqlserver' (default), 'sqlite'",
        missing=["store.backend"],
    )


def create_archive_store(config: SurveillanceConfig) -> ArchiveStore:
    """
    Create the archive store selected by ``archive.backend``.

    No connection is opened until the store is entered.

    Raises:
        ConfigError: If the backend is unknown or archive credentials are missing
    """
    backend = config.get("archive.backend", BACKEND_SQLSERVER)

    if backend == BACKEND_SQLITE:
        return SqliteArchiveStore(Path(config.get("archive.path", "local/archive/signals_archive.db")))

    if backend == BACKEND_SQLSERVER:
        connection = config.require_archive_connection()
        SqlServerArchiveStore = _get_sqlserver_archive_store()
        return SqlServerArchiveStore(connection)

    raise ConfigError(
        f"Unknown archive backend: {backend}. Supported backends: 'sqlserver' (default), 'sqlite'",
        missing=["archive.backend"],
    )


__all__ = [
    "BACKEND_SQLSERVER",
    "BACKEND_SQLITE",
    "SignalStore",
    "ArchiveStore",
    "SqliteSignalStore",
    "SqliteArchiveStore",
    "archive_projection",
    "create_signal_store",
    "create_archive_store",
]
