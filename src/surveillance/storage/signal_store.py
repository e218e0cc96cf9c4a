"""
Primary signal store interface.

The primary store is a single relational table of signals. Every mutation
is a single-row (or single-statement) update or delete; no transaction
spans a batch.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..contracts.result_contracts import RetentionStats
from ..core.types import Signal


class SignalStore(ABC):
    """
    Abstract base class for primary signal stores.
    """

    @abstractmethod
    def insert_signal(self, signal: Signal) -> None:
        """Insert a new signal row."""
        pass

    @abstractmethod
    def get_signal(self, signal_id: str) -> Optional[Signal]:
        """
        Get a signal by id.

        Returns:
            Signal if found, None otherwise
        """
        pass

    @abstractmethod
    def fetch_untriaged(
        self,
        limit: int,
        priorities: Optional[Sequence[str]] = None,
    ) -> List[Signal]:
        """
        Get signals in status new, ordered by priority (P1 first) then newest first.

        Args:
            limit: Maximum number of signals to return
            priorities: Optional priority values to restrict selection to

        Returns:
            List of signals
        """
        pass

    @abstractmethod
    def update_signal(self, signal_id: str, fields: Dict[str, Any]) -> bool:
        """
        Update columns of one signal.

        Returns:
            True if the row existed
        """
        pass

    @abstractmethod
    def delete_signal(self, signal_id: str) -> bool:
        """
        Delete one signal.

        Returns:
            True if a row was deleted
        """
        pass

    @abstractmethod
    def delete_signals(self, signal_ids: Iterable[str]) -> int:
        """Delete signals by id and return the number of rows removed."""
        pass

    @abstractmethod
    def fetch_archivable(self, cutoff: datetime, limit: int) -> List[Signal]:
        """
        Get resolved signals (validated or dismissed) with validated_at before cutoff.
        """
        pass

    @abstractmethod
    def delete_stale(self, cutoff: datetime) -> int:
        """
        Delete signals created before cutoff whose status is not validated.

        Returns:
            Number of rows deleted
        """
        pass

    @abstractmethod
    def list_stale(self, cutoff: datetime) -> List[Signal]:
        """Get the signals ``delete_stale`` would remove."""
        pass

    @abstractmethod
    def retention_stats(self) -> RetentionStats:
        """Get signal counts grouped by UTC creation date and status."""
        pass

    @abstractmethod
    def count_validated(self) -> int:
        pass

    @abstractmethod
    def count_by_status(self) -> Dict[str, int]:
        pass

    @abstractmethod
    def count_by_priority(self) -> Dict[str, int]:
        pass

    @abstractmethod
    def list_for_dedupe(self) -> List[Dict[str, Any]]:
        """
        Get id, original_text and created_at of every signal, oldest first.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the store connection."""
        pass

    def __enter__(self) -> "SignalStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
