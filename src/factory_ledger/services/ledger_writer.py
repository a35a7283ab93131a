"""
Ledger writer for the append-only stock movement ledger.

append_all() writes a set of ledger entries all-or-nothing. Entries are staged
in the caller's transaction and flushed together; if any entry fails, a
LedgerWriteFailure is raised and the enclosing session_scope() rolls back, so
no entry from the attempt becomes visible.

There is intentionally no update or delete function in this module.
"""

from contextlib import nullcontext
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from factory_ledger.models import LedgerDirection, StockRecord
from factory_ledger.services.database import session_scope
from factory_ledger.services.exceptions import LedgerWriteFailure


@dataclass(frozen=True)
class LedgerEntryDraft:
    """A ledger entry that has been derived but not yet written.

    Attributes:
        product_id: Product moved
        direction: LedgerDirection.IN or LedgerDirection.OUT
        quantity: Units moved (> 0)
        effective_date: Date the movement is booked on
        remark: Human-readable description
        actor: Actor booking the movement
        source_item_id: Line item the entry was derived from (not persisted)
    """

    product_id: int
    direction: LedgerDirection
    quantity: int
    effective_date: date
    remark: str
    actor: str
    source_item_id: Optional[int] = None


def _check_draft(draft: LedgerEntryDraft) -> Optional[str]:
    if draft.quantity is None or draft.quantity <= 0:
        return f"quantity must be positive for product {draft.product_id}"
    if not isinstance(draft.direction, LedgerDirection):
        return f"invalid direction {draft.direction!r} for product {draft.product_id}"
    if not draft.actor:
        return f"actor is required for product {draft.product_id}"
    return None


def _insert_entry(session, draft: LedgerEntryDraft) -> StockRecord:
    """Stage a single stock record in the session."""
    record = StockRecord(
        product_id=draft.product_id,
        direction=draft.direction.value,
        quantity=draft.quantity,
        effective_date=draft.effective_date,
        remark=draft.remark,
        actor=draft.actor,
    )
    session.add(record)
    return record


def append_all(drafts: Sequence[LedgerEntryDraft], *, session=None) -> List[StockRecord]:
    """
    Write every draft to the ledger, or none of them.

    All drafts are checked before anything is staged. When a session is
    passed, the caller's transaction must be rolled back on failure (as
    session_scope() does); without one, this function owns the transaction.

    Args:
        drafts: Ledger entries to write, in order
        session: Optional database session

    Returns:
        The written StockRecord rows, flushed (ids assigned), in draft order

    Raises:
        LedgerWriteFailure: If any draft is invalid or any write fails
    """
    problems = [problem for problem in map(_check_draft, drafts) if problem]
    if problems:
        raise LedgerWriteFailure("; ".join(problems))

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        records = []
        try:
            for draft in drafts:
                records.append(_insert_entry(session, draft))
            session.flush()
        except SQLAlchemyError as e:
            raise LedgerWriteFailure(
                f"{len(records)} of {len(drafts)} entries staged before failure", e
            ) from e
        return records
