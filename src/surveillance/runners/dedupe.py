"""
Duplicate purge - collapses signals with identical original text.

The oldest signal for each distinct original_text is kept; later copies are
deleted in batches. A failed batch is logged and counted, and the remaining
batches still run.
"""

import logging
from typing import Any, Dict, List

from ..contracts.result_contracts import DedupeResult
from ..storage.signal_store import SignalStore


logger = logging.getLogger(__name__)

DEFAULT_DELETE_BATCH_SIZE = 100


def find_duplicate_ids(rows: List[Dict[str, Any]]) -> List[str]:
    """
    Return ids of rows whose original_text matches an earlier row.

    Args:
        rows: Rows with id and original_text, oldest first
    """
    seen = set()
    duplicates = []
    for row in rows:
        key = row["original_text"]
        if key in seen:
            duplicates.append(row["id"])
        else:
            seen.add(key)
    return duplicates


class DuplicatePurger:
    def __init__(self, store: SignalStore, batch_size: int = DEFAULT_DELETE_BATCH_SIZE):
        self.store = store
        self.batch_size = max(1, int(batch_size))

    def run(self, dry_run: bool = False) -> DedupeResult:
        rows = self.store.list_for_dedupe()
        to_delete = find_duplicate_ids(rows)
        result = DedupeResult(scanned=len(rows), duplicates=len(to_delete))
        logger.info(f"Found {result.duplicates} duplicates in {result.scanned} signals")

        if dry_run:
            return result

        for start in range(0, len(to_delete), self.batch_size):
            batch = to_delete[start:start + self.batch_size]
            try:
                result.deleted += self.store.delete_signals(batch)
                logger.info(f"Deleted batch {start}-{start + len(batch)}")
            except Exception as e:
                result.errors += len(batch)
                logger.error(f"Error deleting batch {start}-{start + len(batch)}: {e}")

        return result
