"""
Signal lifecycle: status transitions and the manual review workflow.
"""

from .state_machine import (
    TERMINAL_STATUSES,
    ARCHIVABLE_STATUSES,
    RETENTION_PROTECTED_STATUSES,
    MANUAL_TRANSITIONS,
    AUTOMATED_TRANSITIONS,
    is_terminal,
    can_transition,
    assert_transition,
)
from .review import ManualReviewService

__all__ = [
    "TERMINAL_STATUSES",
    "ARCHIVABLE_STATUSES",
    "RETENTION_PROTECTED_STATUSES",
    "MANUAL_TRANSITIONS",
    "AUTOMATED_TRANSITIONS",
    "is_terminal",
    "can_transition",
    "assert_transition",
    "ManualReviewService",
]
