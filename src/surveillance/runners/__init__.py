"""
Pipeline runners: triage, archive sync, retention cleanup and duplicate purge.
"""

from .triage_runner import TriageOrchestrator, clamp_batch_size, triage_from_config
from .archive_sync import ArchivalSynchronizer, archive_from_config
from .retention import RetentionJanitor
from .dedupe import DuplicatePurger, find_duplicate_ids

__all__ = [
    "TriageOrchestrator",
    "clamp_batch_size",
    "triage_from_config",
    "ArchivalSynchronizer",
    "archive_from_config",
    "RetentionJanitor",
    "DuplicatePurger",
    "find_duplicate_ids",
]
