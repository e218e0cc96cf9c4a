"""
Retention Runner - daily purge of stale, never-validated signals.

Deletes every signal created before UTC midnight of the current day whose
status is not validated. New, triaged and soft-dismissed rows are all
removed; validated rows are kept regardless of age. The janitor does not
coordinate with triage.

Usage:
    python -m surveillance cleanup            # delete
    python -m surveillance cleanup --dry-run  # report only
"""

import logging
from datetime import datetime
from typing import Callable

from ..contracts.result_contracts import CleanupResult, RetentionStats
from ..core.logging import CorrelationContext, log_with_context
from ..core.utils import start_of_utc_day, utc_date_key, utc_now
from ..storage.signal_store import SignalStore


logger = logging.getLogger(__name__)


class RetentionJanitor:
    """
    Applies the daily retention rule to the primary store.

    Running ``cleanup`` twice in a row deletes nothing the second time.
    """

    def __init__(self, store: SignalStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    def cleanup(self) -> CleanupResult:
        """
        Delete stale non-validated signals.

        Returns:
            CleanupResult with before/after counts grouped by (date, status)
        """
        with CorrelationContext(operation="cleanup"):
            now = self.clock()
            cutoff = start_of_utc_day(now)
            log_with_context(logger, logging.INFO, f"Starting retention cleanup: cutoff={cutoff.isoformat()}")

            before = self.store.retention_stats()
            deleted = self.store.delete_stale(cutoff)
            after = self.store.retention_stats()
            preserved = self.store.count_validated()

            log_with_context(
                logger, logging.INFO,
                f"Retention cleanup complete: deleted={deleted}, validated_preserved={preserved}",
            )
            return CleanupResult(
                deleted_count=deleted,
                validated_preserved=preserved,
                cutoff=cutoff,
                before=before,
                after=after,
                timestamp=now,
            )

    def preview(self) -> CleanupResult:
        """
        Report what ``cleanup`` would delete without deleting anything.

        ``after`` holds the counts of the rows that would be deleted.
        """
        now = self.clock()
        cutoff = start_of_utc_day(now)
        stale = self.store.list_stale(cutoff)

        counts = {}
        for signal in stale:
            key = (utc_date_key(signal.created_at), signal.status.value)
            counts[key] = counts.get(key, 0) + 1

        return CleanupResult(
            deleted_count=len(stale),
            validated_preserved=self.store.count_validated(),
            cutoff=cutoff,
            before=self.store.retention_stats(),
            after=RetentionStats.from_counts(counts),
            timestamp=now,
            dry_run=True,
        )
