"""
Triage Runner - applies classifier decisions to a batch of new signals.

Flow per batch:
1. Select up to batch_size signals in status new (P1 first, newest first)
2. For each signal, sequentially: throttle, classify, apply the decision
3. Return aggregate counts

A failure on one signal is counted and the batch continues. A safe-default
decision (all providers failed) still attaches the escalation note, but the
signal is counted under errors since no provider resolved it.

Usage:
    python -m surveillance triage --batch-size 25 --priority P1 --priority P2
"""

import logging
import time
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..config.settings import DISMISS_MODE_DELETE, DISMISS_MODE_SOFT
from ..contracts.result_contracts import (
    OUTCOME_DISMISSED,
    OUTCOME_ERROR,
    OUTCOME_ESCALATED,
    OUTCOME_VALIDATED,
    SignalOutcome,
    TriageBatchResult,
)
from ..contracts.triage_contracts import DecisionType, TriageDecision
from ..core.logging import CorrelationContext, log_with_context
from ..core.types import Priority, Signal, SignalStatus
from ..core.utils import utc_now
from ..gateway.classifier_gateway import ClassifierGateway
from ..lifecycle.state_machine import assert_transition
from ..storage.signal_store import SignalStore


logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50
MAX_BATCH_SIZE = 100


def clamp_batch_size(
    value: Any,
    default: int = DEFAULT_BATCH_SIZE,
    maximum: int = MAX_BATCH_SIZE,
) -> int:
    """
    Clamp a requested batch size to [1, maximum].

    Absent, non-numeric or boolean values give ``default``.

    Example:
        >>> clamp_batch_size(5000)
        100
        >>> clamp_batch_size(None)
        50
    """
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if value != value:  # NaN
        return default
    return max(1, min(int(value), maximum))


def format_triage_note(decision: TriageDecision) -> str:
    note = f"[AI TRIAGE] {decision.reasoning} (Confidence: {decision.confidence:g}%)"
    if decision.footnote and decision.footnote.summary:
        note += f"\n{decision.footnote.summary}"
    return note


def format_escalation_note(decision: TriageDecision) -> str:
    return f"[AI ESCALATED] {decision.reasoning} - Requires human review"


def format_dismissal_note(decision: TriageDecision) -> str:
    return f"[AI DISMISSED] {decision.reasoning} (Confidence: {decision.confidence:g}%)"


class TriageOrchestrator:
    """
    Sequential batch triage over the primary store.

    Example:
        >>> orchestrator = TriageOrchestrator(store, gateway)
        >>> orchestrator.run_batch(batch_size=10).to_dict()
        {'validated': 6, 'dismissed': 2, 'escalated': 2, 'errors': 0}
    """

    def __init__(
        self,
        store: SignalStore,
        gateway: ClassifierGateway,
        dismiss_mode: str = DISMISS_MODE_DELETE,
        throttle_seconds: float = 0.2,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = utc_now,
        default_batch_size: int = DEFAULT_BATCH_SIZE,
        max_batch_size: int = MAX_BATCH_SIZE,
    ):
        """
        Initialize the orchestrator.

        Args:
            store: Primary signal store
            gateway: Classifier gateway
            dismiss_mode: "delete" removes dismissed rows, "soft" flags them
            throttle_seconds: Delay before each classification call
            sleep: Sleep function (injectable for tests)
            clock: UTC clock (injectable for tests)
            default_batch_size: Batch size when the caller gives none
            max_batch_size: Upper bound for requested batch sizes
        """
        if dismiss_mode not in (DISMISS_MODE_DELETE, DISMISS_MODE_SOFT):
            raise ValueError(f"Unknown dismiss_mode: {dismiss_mode}")
        self.store = store
        self.gateway = gateway
        self.dismiss_mode = dismiss_mode
        self.throttle_seconds = throttle_seconds
        self.sleep = sleep
        self.clock = clock
        self.default_batch_size = default_batch_size
        self.max_batch_size = max_batch_size

    def run_batch(
        self,
        batch_size: Any = None,
        priorities: Optional[Sequence[str]] = None,
    ) -> TriageBatchResult:
        """
        Triage one batch of new signals.

        Args:
            batch_size: Requested batch size (clamped to [1, max_batch_size],
                default default_batch_size)
            priorities: Optional priority filter, e.g. ["P1", "P2"]; empty means
                all priorities, all-unknown values select nothing

        Returns:
            TriageBatchResult with aggregate counts and per-signal outcomes
        """
        limit = clamp_batch_size(batch_size, default=self.default_batch_size, maximum=self.max_batch_size)
        priority_filter = self._normalize_priorities(priorities)
        run_id = str(uuid.uuid4())

        with CorrelationContext(run_id=run_id, operation="triage"):
            log_with_context(
                logger, logging.INFO,
                f"Starting triage batch: limit={limit}, priorities={priority_filter if priority_filter is not None else 'all'}",
            )
            if priority_filter == []:
                signals = []
            else:
                signals = self.store.fetch_untriaged(limit, priority_filter)
            log_with_context(logger, logging.INFO, f"Fetched {len(signals)} pending signals")

            result = TriageBatchResult()
            for signal in signals:
                result.record(self._process_signal(signal))

            log_with_context(logger, logging.INFO, f"Triage batch complete: {result.to_dict()}")
            return result

    def _process_signal(self, signal: Signal) -> SignalOutcome:
        with CorrelationContext(signal_id=signal.id):
            try:
                if self.throttle_seconds > 0:
                    self.sleep(self.throttle_seconds)
                decision = self.gateway.classify(signal)
                return self.apply_decision(signal, decision)
            except Exception as e:
                log_with_context(logger, logging.ERROR, f"Error processing signal: {e}")
                return SignalOutcome(signal_id=signal.id, outcome=OUTCOME_ERROR, error=str(e))

    def apply_decision(self, signal: Signal, decision: TriageDecision) -> SignalOutcome:
        """
        Apply one decision to the primary store.

        Raises:
            StoreError: If the store write fails
            LifecycleError: If the signal is no longer in a triageable state
        """
        outcome = SignalOutcome(
            signal_id=signal.id,
            outcome=OUTCOME_ESCALATED,
            decision=decision.decision.value,
            provider=decision.provider,
            confidence=decision.confidence,
        )

        if decision.decision == DecisionType.VALIDATE:
            assert_transition(signal.status, SignalStatus.VALIDATED, automated=True)
            now = self.clock()
            priority = decision.priority_adjustment or signal.priority
            self.store.update_signal(signal.id, {
                "status": SignalStatus.VALIDATED.value,
                "validated_at": now,
                "priority": Priority(priority).value,
                "analyst_notes": format_triage_note(decision),
                "updated_at": now,
            })
            outcome.outcome = OUTCOME_VALIDATED

        elif decision.decision == DecisionType.DISMISS:
            assert_transition(signal.status, SignalStatus.DISMISSED, automated=True)
            if self.dismiss_mode == DISMISS_MODE_DELETE:
                self.store.delete_signal(signal.id)
            else:
                now = self.clock()
                self.store.update_signal(signal.id, {
                    "status": SignalStatus.DISMISSED.value,
                    "validated_at": now,
                    "analyst_notes": format_dismissal_note(decision),
                    "updated_at": now,
                })
            outcome.outcome = OUTCOME_DISMISSED

        else:
            self.store.update_signal(signal.id, {"analyst_notes": format_escalation_note(decision)})
            if decision.is_fallback:
                outcome.outcome = OUTCOME_ERROR
                outcome.error = "No provider returned a valid decision"

        log_with_context(
            logger, logging.INFO,
            f"Signal {signal.id}: {outcome.outcome}",
            decision=decision.decision.value,
            provider=decision.provider,
        )
        return outcome

    @staticmethod
    def _normalize_priorities(priorities: Optional[Sequence[str]]) -> Optional[List[str]]:
        if not priorities:
            return None
        normalized = []
        for value in priorities:
            try:
                normalized.append(Priority(str(value).upper()).value)
            except ValueError:
                logger.warning(f"Ignoring unknown priority filter value: {value!r}")
        return normalized


def triage_from_config(config, store: SignalStore, gateway: ClassifierGateway, **kwargs) -> TriageOrchestrator:
    """Build an orchestrator using the triage section of a SurveillanceConfig."""
    return TriageOrchestrator(
        store=store,
        gateway=gateway,
        dismiss_mode=config.dismiss_mode,
        throttle_seconds=float(config.get("triage.throttle_seconds", 0.2)),
        default_batch_size=int(config.get("triage.default_batch_size", DEFAULT_BATCH_SIZE)),
        max_batch_size=int(config.get("triage.max_batch_size", MAX_BATCH_SIZE)),
        **kwargs,
    )
