"""
Archive Sync Runner - copies aged, resolved signals to the archive store.

Flow per run:
1. Select up to batch_size signals (validated or dismissed) whose
   validated_at is older than archive_age_days
2. Open one archive connection for the batch and ensure the schema exists
3. Upsert each signal individually; a failed row is counted and skipped
4. If delete_after_sync is set, delete exactly the ids that synced; a failed
   delete is logged and leaves deleted at 0

Re-running is safe: an already-archived signal is updated in place.

Usage:
    python -m surveillance archive --batch-size 500 --age-days 7 --delete-after-sync
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Callable

from ..contracts.result_contracts import ArchiveSyncResult
from ..core.logging import CorrelationContext, log_with_context
from ..core.types import Signal
from ..core.utils import days_ago, ensure_utc, utc_now
from ..lifecycle.state_machine import ARCHIVABLE_STATUSES
from ..storage.archive_store import ArchiveStore
from ..storage.signal_store import SignalStore
from .triage_runner import clamp_batch_size


logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500
MAX_BATCH_SIZE = 1000
DEFAULT_ARCHIVE_AGE_DAYS = 7


def _age_days(value: Any, default: float = DEFAULT_ARCHIVE_AGE_DAYS) -> float:
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if value != value or value < 0:
        return default
    return value


class ArchivalSynchronizer:
    """
    Idempotent primary-to-archive sync.

    Example:
        >>> synchronizer = ArchivalSynchronizer(store, archive_store)
        >>> synchronizer.archive(batch_size=100, delete_after_sync=True).to_dict()
        {'synced': 42, 'deleted': 42, 'errors': 0, 'skipped': 0}
    """

    def __init__(
        self,
        store: SignalStore,
        archive_store: ArchiveStore,
        clock: Callable[[], datetime] = utc_now,
        default_batch_size: int = DEFAULT_BATCH_SIZE,
        max_batch_size: int = MAX_BATCH_SIZE,
        archive_age_days: float = DEFAULT_ARCHIVE_AGE_DAYS,
        delete_after_sync: bool = False,
    ):
        """
        Initialize the synchronizer.

        Args:
            store: Primary signal store
            archive_store: Archive store (opened once per run)
            clock: UTC clock (injectable for tests)
            default_batch_size: Batch size when the caller gives none
            max_batch_size: Upper bound for requested batch sizes
            archive_age_days: Age threshold when the caller gives none
            delete_after_sync: Delete synced rows when the caller does not say
        """
        self.store = store
        self.archive_store = archive_store
        self.clock = clock
        self.default_batch_size = default_batch_size
        self.max_batch_size = max_batch_size
        self.archive_age_days = archive_age_days
        self.delete_after_sync = delete_after_sync is True

    def archive(
        self,
        batch_size: Any = None,
        archive_age_days: Any = None,
        delete_after_sync: Any = None,
    ) -> ArchiveSyncResult:
        """
        Run one archive sync.

        Args:
            batch_size: Requested batch size (clamped to [1, max_batch_size])
            archive_age_days: Minimum age of validated_at in days
            delete_after_sync: Delete synced rows from the primary store; only
                a literal True enables it, None uses the configured default

        Returns:
            ArchiveSyncResult with aggregate counts

        Raises:
            StoreError: If the archive connection or schema setup fails
        """
        limit = clamp_batch_size(batch_size, default=self.default_batch_size, maximum=self.max_batch_size)
        age_days = _age_days(archive_age_days, default=self.archive_age_days)
        if delete_after_sync is None:
            delete_after_sync = self.delete_after_sync
        delete_after_sync = delete_after_sync is True

        with CorrelationContext(run_id=str(uuid.uuid4()), operation="archive"):
            cutoff = days_ago(self.clock(), age_days)
            log_with_context(
                logger, logging.INFO,
                f"Starting archive sync: limit={limit}, cutoff={cutoff.isoformat()}, "
                f"delete_after_sync={delete_after_sync}",
            )

            signals = self.store.fetch_archivable(cutoff, limit)
            result = ArchiveSyncResult()
            if not signals:
                log_with_context(logger, logging.INFO, "No signals to archive")
                return result

            with self.archive_store:
                self.archive_store.ensure_schema()
                for signal in signals:
                    if not self._is_eligible(signal, cutoff):
                        result.skipped += 1
                        continue
                    try:
                        self.archive_store.upsert(signal, synced_at=self.clock())
                    except Exception as e:
                        result.errors += 1
                        log_with_context(
                            logger, logging.ERROR,
                            f"Failed to archive signal: {e}",
                            signal_id=signal.id,
                        )
                        continue
                    result.synced += 1
                    result.synced_ids.append(signal.id)

            if delete_after_sync and result.synced_ids:
                try:
                    result.deleted = self.store.delete_signals(result.synced_ids)
                    log_with_context(
                        logger, logging.INFO,
                        f"Deleted {result.deleted} archived signals from primary store",
                    )
                except Exception as e:
                    # Synced rows stay in the primary store and are re-synced next run
                    log_with_context(
                        logger, logging.ERROR,
                        f"Failed to delete {len(result.synced_ids)} archived signals from primary store: {e}",
                    )

            log_with_context(logger, logging.INFO, f"Archive sync complete: {result.to_dict()}")
            return result

    @staticmethod
    def _is_eligible(signal: Signal, cutoff: datetime) -> bool:
        if signal.status not in ARCHIVABLE_STATUSES or signal.validated_at is None:
            return False
        return ensure_utc(signal.validated_at) < cutoff


def archive_from_config(config, store: SignalStore, archive_store: ArchiveStore, **kwargs) -> ArchivalSynchronizer:
    """Build a synchronizer using the archive section of a SurveillanceConfig."""
    return ArchivalSynchronizer(
        store,
        archive_store,
        default_batch_size=int(config.get("archive.default_batch_size", DEFAULT_BATCH_SIZE)),
        max_batch_size=int(config.get("archive.max_batch_size", MAX_BATCH_SIZE)),
        archive_age_days=float(config.get("archive.archive_age_days", DEFAULT_ARCHIVE_AGE_DAYS)),
        delete_after_sync=config.get("archive.delete_after_sync", False) is True,
        **kwargs,
    )
