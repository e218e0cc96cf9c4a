"""
Result Contracts - Aggregate results returned by the pipeline runners.

Each runner returns a dataclass whose ``to_dict`` produces the exact JSON
shape of its entry point. Per-signal detail is kept alongside for logging
and tests but is not part of the response body.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


OUTCOME_VALIDATED = "validated"
OUTCOME_DISMISSED = "dismissed"
OUTCOME_ESCALATED = "escalated"
OUTCOME_ERROR = "error"


@dataclass
class SignalOutcome:
    """What happened to one signal during a triage batch."""
    signal_id: str
    outcome: str
    decision: Optional[str] = None
    provider: Optional[str] = None
    confidence: Optional[float] = None
    error: Optional[str] = None


@dataclass
class TriageBatchResult:
    """
    Aggregate counts for one triage batch.

    Attributes:
        validated: Signals moved to validated
        dismissed: Signals dismissed (deleted or soft-dismissed)
        escalated: Signals left in place with an escalation note
        errors: Signals that could not be resolved
        outcomes: Per-signal outcomes, in processing order
    """
    validated: int = 0
    dismissed: int = 0
    escalated: int = 0
    errors: int = 0
    outcomes: List[SignalOutcome] = field(default_factory=list)

    def record(self, outcome: SignalOutcome) -> None:
        """Append an outcome and bump the matching counter."""
        self.outcomes.append(outcome)
        if outcome.outcome == OUTCOME_VALIDATED:
            self.validated += 1
        elif outcome.outcome == OUTCOME_DISMISSED:
            self.dismissed += 1
        elif outcome.outcome == OUTCOME_ESCALATED:
            self.escalated += 1
        else:
            self.errors += 1

    @property
    def processed(self) -> int:
        return len(self.outcomes)

    def to_dict(self) -> Dict[str, int]:
        return {
            "validated": self.validated,
            "dismissed": self.dismissed,
            "escalated": self.escalated,
            "errors": self.errors,
        }


@dataclass
class ArchiveSyncResult:
    """
    Aggregate counts for one archive sync run.

    Attributes:
        synced: Rows upserted into the archive store
        deleted: Rows removed from the primary store after syncing
        errors: Rows whose upsert failed
        skipped: Fetched rows that were not eligible on re-check
        synced_ids: Ids upserted in this run
    """
    synced: int = 0
    deleted: int = 0
    errors: int = 0
    skipped: int = 0
    synced_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, int]:
        return {
            "synced": self.synced,
            "deleted": self.deleted,
            "errors": self.errors,
            "skipped": self.skipped,
        }


@dataclass
class RetentionBucket:
    """Signal count for one (date, status) pair."""
    date: str
    status: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date, "status": self.status, "count": self.count}


@dataclass
class RetentionStats:
    """Signal counts grouped by UTC creation date and status."""
    buckets: List[RetentionBucket] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(b.count for b in self.buckets)

    def by_status(self) -> Dict[str, int]:
        totals: Dict[str, int] = {}
        for bucket in self.buckets:
            totals[bucket.status] = totals.get(bucket.status, 0) + bucket.count
        return totals

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "by_status": self.by_status(),
            "buckets": [b.to_dict() for b in self.buckets],
        }

    @classmethod
    def from_counts(cls, counts: Dict[tuple, int]) -> "RetentionStats":
        """Build from a {(date, status): count} mapping, sorted newest date first."""
        buckets = [
            RetentionBucket(date=date, status=status, count=count)
            for (date, status), count in counts.items()
        ]
        buckets.sort(key=lambda b: (b.date, b.status))
        buckets.sort(key=lambda b: b.date, reverse=True)
        return cls(buckets=buckets)


@dataclass
class CleanupResult:
    """
    Result of one retention cleanup.

    Attributes:
        deleted_count: Stale non-validated rows removed
        validated_preserved: Validated rows left untouched
        cutoff: Start of the UTC day used as the deletion boundary
        before: Counts by (date, status) before deletion
        after: Counts by (date, status) after deletion
        timestamp: When the cleanup ran
    """
    deleted_count: int
    validated_preserved: int
    cutoff: datetime
    before: RetentionStats
    after: RetentionStats
    timestamp: datetime
    dry_run: bool = False

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "success": True,
            "deleted": self.deleted_count,
            "validated_preserved": self.validated_preserved,
            "retention_stats": {
                "cutoff": self.cutoff.isoformat(),
                "before": self.before.to_dict(),
                "after": self.after.to_dict(),
            },
            "timestamp": self.timestamp.isoformat(),
        }
        if self.dry_run:
            result["dry_run"] = True
        return result


@dataclass
class DedupeResult:
    """Counts for one duplicate purge."""
    scanned: int = 0
    duplicates: int = 0
    deleted: int = 0
    errors: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "scanned": self.scanned,
            "duplicates": self.duplicates,
            "deleted": self.deleted,
            "errors": self.errors,
        }
