"""
Approval state machine for production batches.

    pending  --confirm-->  confirmed   (final)
    pending  --reject--->  rejected
    rejected --resubmit--> pending

There is no transition out of confirmed. Anything not listed in TRANSITIONS
is refused with GuardViolation, which callers report as "already processed".

This module holds only the rules. The reconciliation service applies them and
makes the status write itself conditional (batch_store.compare_and_set_status),
so a rule check passing here does not mean a concurrent writer cannot still win.
"""

from typing import Dict, FrozenSet, Union

from factory_ledger.models import BatchStatus
from factory_ledger.services.exceptions import GuardViolation

TRANSITIONS: Dict[BatchStatus, FrozenSet[BatchStatus]] = {
    BatchStatus.PENDING: frozenset({BatchStatus.CONFIRMED, BatchStatus.REJECTED}),
    BatchStatus.REJECTED: frozenset({BatchStatus.PENDING}),
    BatchStatus.CONFIRMED: frozenset(),
}


def can_transition(current: Union[BatchStatus, str], target: Union[BatchStatus, str]) -> bool:
    """Check whether ``current -> target`` is an allowed transition."""
    return BatchStatus(target) in TRANSITIONS[BatchStatus(current)]


def ensure_transition(
    batch_id: int,
    current: Union[BatchStatus, str],
    target: Union[BatchStatus, str],
) -> None:
    """
    Refuse a transition the state machine does not allow.

    Raises:
        GuardViolation: If ``current -> target`` is not allowed
    """
    if not can_transition(current, target):
        raise GuardViolation(batch_id, BatchStatus(current).value, BatchStatus(target).value)


def is_final(status: Union[BatchStatus, str]) -> bool:
    """True for states with no outgoing transition."""
    return not TRANSITIONS[BatchStatus(status)]
