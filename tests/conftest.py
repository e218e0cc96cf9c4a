"""
Shared test fixtures and configuration for pytest.
"""

import logging
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

import pytest

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from surveillance.core.types import Priority, Signal, SignalStatus


logger = logging.getLogger(__name__)

FIXED_NOW = datetime(2026, 3, 15, 14, 30, 0, tzinfo=timezone.utc)


# ============================================================================
# Environment detection
# ============================================================================

def sqlserver_connection_string() -> str:
    """Build a connection string from SIGNAL_SQLSERVER_* variables ("" if unset)."""
    conn_str = os.environ.get("SIGNAL_SQLSERVER_CONN_STR")
    if conn_str:
        return conn_str

    password = os.environ.get("SIGNAL_SQLSERVER_PASSWORD") or os.environ.get("MSSQL_SA_PASSWORD")
    if not password:
        return ""

    host = os.environ.get("SIGNAL_SQLSERVER_HOST", "localhost")
    port = int(os.environ.get("SIGNAL_SQLSERVER_PORT", "1433"))
    database = os.environ.get("SIGNAL_SQLSERVER_DATABASE", "Surveillance")
    username = os.environ.get("SIGNAL_SQLSERVER_USER", "sa")
    driver = os.environ.get("SIGNAL_SQLSERVER_DRIVER", "ODBC Driver 18 for SQL Server")
    return (
        f"Driver={{{driver}}};"
        f"Server={host},{port};"
        f"Database={database};"
        f"UID={username};"
        f"PWD={password};"
        f"TrustServerCertificate=yes"
    )


def is_sqlserver_available() -> bool:
    """Check if SQL Server is available for testing."""
    conn_str = sqlserver_connection_string()
    if not conn_str:
        return False

    try:
        import pyodbc

        conn = pyodbc.connect(conn_str, timeout=5)
        conn.close()
        return True

    except Exception as e:
        logger.debug(f"SQL Server not available: {e}")
        return False


# ============================================================================
# Pytest hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (requires SQL Server)")


def pytest_collection_modifyitems(config, items):
    """Automatically skip integration tests if SQL Server is not available."""
    if not any("integration" in item.keywords for item in items):
        return
    if is_sqlserver_available():
        return

    skip_sqlserver = pytest.mark.skip(
        reason="SQL Server not available (set SIGNAL_SQLSERVER_PASSWORD and ensure SQL Server is running)"
    )

    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_sqlserver)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def now() -> datetime:
    """Fixed 'current time' used by injected clocks."""
    return FIXED_NOW


@pytest.fixture
def clock(now) -> Callable[[], datetime]:
    return lambda: now


@pytest.fixture
def make_signal(now) -> Callable[..., Signal]:
    """Factory for signals with sensible defaults; keyword arguments override fields."""
    counter = {"n": 0}

    def _make(**overrides) -> Signal:
        counter["n"] += 1
        fields = {
            "original_text": f"Cluster of acute watery diarrhoea reported, case {counter['n']}",
            "location_country": "Uganda",
            "source_name": "Ministry of Health",
            "priority": Priority.P3,
            "status": SignalStatus.NEW,
            "created_at": now - timedelta(hours=1),
            "updated_at": now - timedelta(hours=1),
        }
        fields.update(overrides)
        return Signal(**fields)

    return _make


@pytest.fixture
def signal_store(tmp_path):
    """SQLite primary store in a temporary directory."""
    from surveillance.storage import SqliteSignalStore

    store = SqliteSignalStore(tmp_path / "signals.db")
    yield store
    store.close()


@pytest.fixture
def archive_store(tmp_path):
    """SQLite archive store in a temporary directory (not yet opened)."""
    from surveillance.storage import SqliteArchiveStore

    store = SqliteArchiveStore(tmp_path / "archive.db")
    yield store
    store.close()


@pytest.fixture
def base_env(tmp_path) -> dict:
    """Environment mapping for SurveillanceConfig with SQLite stores and both providers."""
    return {
        "SIGNAL_STORE_BACKEND": "sqlite",
        "SIGNAL_SQLITE_PATH": str(tmp_path / "signals.db"),
        "ARCHIVE_STORE_BACKEND": "sqlite",
        "ARCHIVE_SQLITE_PATH": str(tmp_path / "archive.db"),
        "AZURE_OPENAI_ENDPOINT": "https://example-resource.openai.azure.com",
        "AZURE_OPENAI_API_KEY": "azure-key",
        "AZURE_OPENAI_DEPLOYMENT": "surveillance-gpt",
        "AI_GATEWAY_API_KEY": "gateway-key",
        "TRIAGE_THROTTLE_SECONDS": "0",
    }
