"""
Contracts for provider decisions and runner results.
"""

from .triage_contracts import (
    DecisionType,
    DecisionFootnote,
    TriageDecision,
    FALLBACK_PROVIDER,
    SAFE_DEFAULT_REASONING,
    safe_default_decision,
    validate_triage_decision_output,
    extract_json_object,
    parse_triage_decision,
)
from .result_contracts import (
    SignalOutcome,
    TriageBatchResult,
    ArchiveSyncResult,
    RetentionBucket,
    RetentionStats,
    CleanupResult,
    DedupeResult,
)

__all__ = [
    "DecisionType",
    "DecisionFootnote",
    "TriageDecision",
    "FALLBACK_PROVIDER",
    "SAFE_DEFAULT_REASONING",
    "safe_default_decision",
    "validate_triage_decision_output",
    "extract_json_object",
    "parse_triage_decision",
    "SignalOutcome",
    "TriageBatchResult",
    "ArchiveSyncResult",
    "RetentionBucket",
    "RetentionStats",
    "CleanupResult",
    "DedupeResult",
]
