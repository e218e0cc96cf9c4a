"""
Manual review workflow.

Applies analyst actions to a signal through the primary store, stamping
audit fields from the reviewer identity supplied by the auth layer.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, Any, Optional

from ..core.exceptions import StoreError
from ..core.types import Reviewer, Signal, SignalStatus
from ..core.utils import utc_now
from .state_machine import assert_transition


logger = logging.getLogger(__name__)


class ManualReviewService:
    """
    Analyst-driven status changes.

    Example:
        >>> service = ManualReviewService(store)
        >>> service.mark_triaged(signal_id, Reviewer("user-1"))
        >>> service.dismiss(signal_id, Reviewer("user-1"), notes="Duplicate report")
    """

    def __init__(self, store, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    def mark_triaged(self, signal_id: str, reviewer: Reviewer, notes: Optional[str] = None) -> Signal:
        return self._transition(signal_id, SignalStatus.TRIAGED, reviewer, notes)

    def validate(self, signal_id: str, reviewer: Reviewer, notes: Optional[str] = None) -> Signal:
        return self._transition(signal_id, SignalStatus.VALIDATED, reviewer, notes)

    def dismiss(self, signal_id: str, reviewer: Reviewer, notes: Optional[str] = None) -> Signal:
        """Soft-dismiss: the row is kept with status dismissed."""
        return self._transition(signal_id, SignalStatus.DISMISSED, reviewer, notes)

    def save_notes(self, signal_id: str, reviewer: Reviewer, notes: str) -> Signal:
        self._check_writer(reviewer)
        signal = self._load(signal_id)
        now = self.clock()
        self.store.update_signal(signal_id, {"analyst_notes": notes, "updated_at": now})
        signal.analyst_notes = notes
        signal.updated_at = now
        return signal

    def _transition(
        self,
        signal_id: str,
        target: SignalStatus,
        reviewer: Reviewer,
        notes: Optional[str],
    ) -> Signal:
        self._check_writer(reviewer)
        signal = self._load(signal_id)
        assert_transition(signal.status, target)

        now = self.clock()
        updates: Dict[str, Any] = {"status": target.value, "updated_at": now}
        if notes is not None:
            updates["analyst_notes"] = notes

        if target == SignalStatus.TRIAGED:
            updates["triaged_by"] = reviewer.user_id
            updates["triaged_at"] = now
        else:
            updates["validated_by"] = reviewer.user_id
            updates["validated_at"] = now

        self.store.update_signal(signal_id, updates)
        logger.info(f"Signal {signal_id}: {signal.status.value} -> {target.value} by {reviewer.user_id}")

        return self._load(signal_id)

    def _load(self, signal_id: str) -> Signal:
        signal = self.store.get_signal(signal_id)
        if signal is None:
            raise StoreError(f"Signal not found: {signal_id}")
        return signal

    @staticmethod
    def _check_writer(reviewer: Reviewer) -> None:
        if not reviewer.can_write:
            raise PermissionError(f"Role {reviewer.role!r} cannot modify signals")
