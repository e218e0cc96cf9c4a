"""
Archive (cold) store interface.

The archive holds one row per resolved signal: the ARCHIVE_COLUMNS
projection plus ``synced_at``. Rows are written only by the archival
synchronizer, through an idempotent upsert keyed by signal id.

A store instance holds at most one connection, opened for the duration of a
sync batch:

    with archive_store:
        archive_store.ensure_schema()
        for signal in batch:
            archive_store.upsert(signal, synced_at=now)
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional

from ..core.types import ARCHIVE_COLUMNS, Signal


ARCHIVE_TABLE = "signals_archive"

# Indexed columns; created_at is indexed descending.
ARCHIVE_INDEXES = {
    "idx_signals_archive_country": "location_country",
    "idx_signals_archive_disease": "disease_name",
    "idx_signals_archive_created": "created_at DESC",
    "idx_signals_archive_status": "status",
}


def archive_projection(signal: Signal) -> Dict[str, Any]:
    """Return the archived subset of a signal's fields."""
    data = signal.to_dict()
    return {name: data.get(name) for name in ARCHIVE_COLUMNS}


class ArchiveStore(ABC):
    """
    Abstract base class for archive stores.
    """

    @abstractmethod
    def open(self) -> None:
        """Acquire the batch connection."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the batch connection (safe to call when not open)."""
        pass

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create the archive table and its indexes if they do not exist."""
        pass

    @abstractmethod
    def upsert(self, signal: Signal, synced_at: datetime) -> None:
        """
        Insert the signal's projection, or refresh the mutable fields if present.

        On conflict only status, analyst_notes and validated_at are updated,
        and synced_at is set to ``synced_at``.

        Raises:
            StoreError: If the statement fails (the connection stays usable)
        """
        pass

    @abstractmethod
    def get(self, signal_id: str) -> Optional[Dict[str, Any]]:
        """Get an archived row as a dict, or None."""
        pass

    @abstractmethod
    def count(self) -> int:
        pass

    def __enter__(self) -> "ArchiveStore":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
