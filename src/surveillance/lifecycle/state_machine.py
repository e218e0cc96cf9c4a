"""
Signal lifecycle state machine.

States: new (initial) -> triaged -> validated | dismissed (terminal).

Two workflows move signals through it:
- Manual review: new -> triaged -> validated/dismissed, or new straight to a
  terminal state. Dismissal is a soft status; the row is kept.
- Automated triage: new -> validated directly. A dismiss decision either
  deletes the row (dismiss_mode "delete") or sets the soft dismissed status
  (dismiss_mode "soft"). Escalation never changes status.

Retention only protects validated rows; every other status, soft-dismissed
included, is subject to the daily cutoff.
"""

from typing import Dict, FrozenSet, Union

from ..core.exceptions import LifecycleError
from ..core.types import SignalStatus


TERMINAL_STATUSES: FrozenSet[SignalStatus] = frozenset({
    SignalStatus.VALIDATED,
    SignalStatus.DISMISSED,
})

# Statuses eligible for archive sync once aged.
ARCHIVABLE_STATUSES: FrozenSet[SignalStatus] = TERMINAL_STATUSES

# Statuses the retention janitor never deletes.
RETENTION_PROTECTED_STATUSES: FrozenSet[SignalStatus] = frozenset({SignalStatus.VALIDATED})

MANUAL_TRANSITIONS: Dict[SignalStatus, FrozenSet[SignalStatus]] = {
    SignalStatus.NEW: frozenset({SignalStatus.TRIAGED, SignalStatus.VALIDATED, SignalStatus.DISMISSED}),
    SignalStatus.TRIAGED: frozenset({SignalStatus.VALIDATED, SignalStatus.DISMISSED}),
    SignalStatus.VALIDATED: frozenset(),
    SignalStatus.DISMISSED: frozenset(),
}

AUTOMATED_TRANSITIONS: Dict[SignalStatus, FrozenSet[SignalStatus]] = {
    SignalStatus.NEW: frozenset({SignalStatus.VALIDATED, SignalStatus.DISMISSED}),
    SignalStatus.TRIAGED: frozenset(),
    SignalStatus.VALIDATED: frozenset(),
    SignalStatus.DISMISSED: frozenset(),
}


def _status(value: Union[SignalStatus, str]) -> SignalStatus:
    return value if isinstance(value, SignalStatus) else SignalStatus(value)


def is_terminal(status: Union[SignalStatus, str]) -> bool:
    return _status(status) in TERMINAL_STATUSES


def can_transition(
    current: Union[SignalStatus, str],
    target: Union[SignalStatus, str],
    automated: bool = False,
) -> bool:
    """Return True if ``current -> target`` is legal for the given workflow."""
    table = AUTOMATED_TRANSITIONS if automated else MANUAL_TRANSITIONS
    return _status(target) in table[_status(current)]


def assert_transition(
    current: Union[SignalStatus, str],
    target: Union[SignalStatus, str],
    automated: bool = False,
) -> None:
    """
    Raise LifecycleError if ``current -> target`` is not legal.
    """
    if not can_transition(current, target, automated=automated):
        current_value = _status(current).value
        target_value = _status(target).value
        workflow = "automated" if automated else "manual"
        raise LifecycleError(
            f"Illegal {workflow} transition: {current_value} -> {target_value}",
            current=current_value,
            target=target_value,
        )
