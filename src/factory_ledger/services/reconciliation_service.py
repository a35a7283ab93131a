"""
Production confirmation reconciliation.

This module drives the approval workflow for production batches:
- confirm_batch(): pair relabel items, derive ledger entries, write them and
  mark the batch confirmed, all in one transaction
- reject_batch(): send a pending batch back with a reason (no ledger effect)
- resubmit_batch(): let the submitter edit a rejected batch's line items and
  put it back in the pending queue

Exactly-once ledger application:
    The status change (compare-and-set from pending) and the ledger writes
    share one transaction. If another confirmer got there first, the
    compare-and-set reports a conflict before anything is written and
    GuardViolation is raised. If any ledger write fails, LedgerWriteFailure
    is raised and the savepoint holding both the status change and the entries
    rolls back, leaving the batch pending with no entries written; the whole
    confirm can then be retried, on the same session if the caller passed one.

Session Management Pattern:
- All public functions accept session=None parameter
- If session is None, the function owns its transaction via session_scope()
- If a session is provided, the caller must roll it back when an exception
  propagates (session_scope() does this)
"""

import logging
from contextlib import nullcontext
from typing import Any, Dict, Mapping, Optional

from factory_ledger.models import BatchStatus, ProductionBatch
from factory_ledger.services import (
    approval_rules,
    batch_store,
    ledger_writer,
    product_catalog_service,
)
from factory_ledger.services.batch_query_service import batch_to_dict
from factory_ledger.services.database import session_scope
from factory_ledger.services.exceptions import (
    GuardViolation,
    LedgerWriteFailure,
    LineItemNotFound,
    NotBatchSubmitter,
    ValidationError,
)
from factory_ledger.services.ledger_entry_deriver import derive_ledger_entries
from factory_ledger.services.logging_utils import get_service_logger, log_operation
from factory_ledger.services.pairing_resolver import pair_relabel_items
from factory_ledger.services.production_intake_service import check_warehouses
from factory_ledger.utils.datetime_utils import utc_now

logger = get_service_logger(__name__)


def _current_status(session, batch_id: int) -> Optional[str]:
    return (
        session.query(ProductionBatch.status)
        .filter(ProductionBatch.id == batch_id)
        .scalar()
    )


def _check_rule(operation: str, batch: ProductionBatch, target: BatchStatus) -> None:
    """Apply the state machine, logging refusals."""
    try:
        approval_rules.ensure_transition(batch.id, batch.status, target)
    except GuardViolation:
        log_operation(
            logger,
            operation=operation,
            outcome="guard_violation",
            level=logging.WARNING,
            batch_id=batch.id,
            current_status=batch.status,
        )
        raise


def _transition(
    operation: str,
    session,
    batch: ProductionBatch,
    expected: BatchStatus,
    target: BatchStatus,
    **metadata: Any,
) -> None:
    """Compare-and-set the batch status, raising GuardViolation on conflict."""
    if not batch_store.compare_and_set_status(
        batch.id, expected, target, session=session, **metadata
    ):
        current = _current_status(session, batch.id)
        log_operation(
            logger,
            operation=operation,
            outcome="status_conflict",
            level=logging.WARNING,
            batch_id=batch.id,
            current_status=current,
        )
        raise GuardViolation(batch.id, current or expected.value, target.value)
    session.refresh(batch)


# =============================================================================
# Confirmation
# =============================================================================


def confirm_batch(batch_id: int, confirmed_by: str, *, session=None) -> Dict[str, Any]:
    """
    Confirm a pending batch and write its ledger entries exactly once.

    Steps:
    1. Load the batch and check pending -> confirmed is allowed
    2. Check every referenced product exists
    3. Pair relabel items and derive one ledger entry per line item
    4. Compare-and-set the status to confirmed
    5. Write all entries via ledger_writer.append_all()

    Steps 4 and 5 run inside one savepoint, so either the batch is confirmed
    with all of its entries or nothing changes, even in a caller's session.

    Args:
        batch_id: Batch to confirm
        confirmed_by: Confirming actor
        session: Optional database session

    Returns:
        Dict with keys:
            - "batch_id": int
            - "status": "confirmed"
            - "confirmed_by": str
            - "confirmed_at": ISO timestamp
            - "entry_count": int
            - "paired_count": int - relabel actions whose remarks name a partner
            - "entries": List[Dict] - written ledger entries

    Raises:
        ValidationError: If confirmed_by is blank
        BatchNotFound: If the batch doesn't exist
        ProductNotFound: If a line item's product no longer exists
        GuardViolation: If the batch is not pending (already processed)
        LedgerWriteFailure: If any ledger entry could not be written
    """
    if not confirmed_by:
        raise ValidationError(["Confirming actor is required"])

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        batch = batch_store.get_batch(batch_id, session=session)
        _check_rule("confirm_batch", batch, BatchStatus.CONFIRMED)

        items = list(batch.items)
        product_ids = [item.product_id for item in items]
        product_catalog_service.require_products(product_ids, session=session)
        labels = product_catalog_service.lookup_many(product_ids, session=session)

        pairing = pair_relabel_items(items)
        drafts = derive_ledger_entries(
            items,
            pairing,
            labels,
            production_date=batch.production_date,
            actor=confirmed_by,
            batch_id=batch.id,
        )

        try:
            # A savepoint keeps a failed write from leaving the status change
            # behind in a session the caller goes on to commit
            with session.begin_nested():
                _transition(
                    "confirm_batch",
                    session,
                    batch,
                    BatchStatus.PENDING,
                    BatchStatus.CONFIRMED,
                    confirmed_by=confirmed_by,
                    confirmed_at=utc_now(),
                )
                records = ledger_writer.append_all(drafts, session=session)
        except LedgerWriteFailure as e:
            log_operation(
                logger,
                operation="confirm_batch",
                outcome="ledger_write_failed",
                level=logging.ERROR,
                batch_id=batch_id,
                entry_count=len(drafts),
                error=str(e),
            )
            raise

        log_operation(
            logger,
            operation="confirm_batch",
            outcome="success",
            batch_id=batch_id,
            actor=confirmed_by,
            entry_count=len(records),
            paired_count=pairing.paired_count,
            unpaired_count=len(pairing.unpaired_outs) + len(pairing.unpaired_ins),
        )

        return {
            "batch_id": batch_id,
            "status": BatchStatus.CONFIRMED.value,
            "confirmed_by": confirmed_by,
            "confirmed_at": batch.confirmed_at.isoformat(),
            "entry_count": len(records),
            "paired_count": pairing.paired_count,
            "entries": [record.to_dict() for record in records],
        }


# =============================================================================
# Rejection and Resubmission
# =============================================================================


def reject_batch(
    batch_id: int,
    rejected_by: str,
    reason: str,
    *,
    session=None,
) -> Dict[str, Any]:
    """
    Reject a pending batch. No ledger entries are written.

    The rejecting actor and time are recorded in confirmed_by/confirmed_at.

    Args:
        batch_id: Batch to reject
        rejected_by: Rejecting actor
        reason: Why the batch was rejected (required)
        session: Optional database session

    Returns:
        Batch dictionary

    Raises:
        ValidationError: If the reason or actor is blank
        BatchNotFound: If the batch doesn't exist
        GuardViolation: If the batch is not pending
    """
    errors = []
    if not rejected_by:
        errors.append("Rejecting actor is required")
    if not reason or not reason.strip():
        errors.append("A reject reason is required")
    if errors:
        raise ValidationError(errors)

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        batch = batch_store.get_batch(batch_id, session=session)
        _check_rule("reject_batch", batch, BatchStatus.REJECTED)

        _transition(
            "reject_batch",
            session,
            batch,
            BatchStatus.PENDING,
            BatchStatus.REJECTED,
            confirmed_by=rejected_by,
            confirmed_at=utc_now(),
            reject_reason=reason.strip(),
        )

        log_operation(
            logger,
            operation="reject_batch",
            outcome="success",
            batch_id=batch_id,
            actor=rejected_by,
        )
        return batch_to_dict(batch)


def _parse_edit_quantity(item_id: int, value: Any) -> int:
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        quantity = 0
    if isinstance(value, bool) or quantity <= 0:
        raise ValidationError([f"Line item {item_id}: quantity must be a whole number > 0"])
    return quantity


def resubmit_batch(
    batch_id: int,
    submitted_by: str,
    item_edits: Optional[Mapping[int, Mapping[str, Any]]] = None,
    *,
    session=None,
) -> Dict[str, Any]:
    """
    Edit a rejected batch's line items and return it to pending.

    Only product and quantity can change; item ids and categories are kept
    so edits stay traceable. Confirmation metadata (confirmed_by,
    confirmed_at, reject_reason) is cleared.

    Args:
        batch_id: Rejected batch to resubmit
        submitted_by: Actor resubmitting; must be the original submitter
        item_edits: Mapping of line item id to {"product_id"?, "quantity"?}
        session: Optional database session

    Returns:
        Batch dictionary

    Raises:
        BatchNotFound: If the batch doesn't exist
        NotBatchSubmitter: If submitted_by is not the original submitter
        GuardViolation: If the batch is not rejected
        LineItemNotFound: If an edit names an item outside this batch
        ValidationError: If an edited quantity is not > 0 or a product is
            from the wrong warehouse
        ProductNotFound: If an edited product doesn't exist
    """
    item_edits = item_edits or {}

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        batch = batch_store.get_batch(batch_id, session=session)
        if batch.submitted_by != submitted_by:
            log_operation(
                logger,
                operation="resubmit_batch",
                outcome="not_submitter",
                level=logging.WARNING,
                batch_id=batch_id,
                actor=submitted_by,
            )
            raise NotBatchSubmitter(batch_id, submitted_by)
        _check_rule("resubmit_batch", batch, BatchStatus.PENDING)

        items_by_id = {item.id: item for item in batch.items}
        planned = {}
        for item_id, edit in item_edits.items():
            item = items_by_id.get(item_id)
            if item is None:
                raise LineItemNotFound(item_id, batch_id)
            changes = {}
            if "quantity" in edit:
                changes["quantity"] = _parse_edit_quantity(item_id, edit["quantity"])
            if edit.get("product_id"):
                changes["product_id"] = edit["product_id"]
            planned[item_id] = changes

        # Validate the batch as it will look after the edits
        check_warehouses(
            [
                {
                    "product_id": planned.get(item.id, {}).get("product_id", item.product_id),
                    "category": item.category,
                }
                for item in batch.items
            ],
            session,
        )

        _transition(
            "resubmit_batch",
            session,
            batch,
            BatchStatus.REJECTED,
            BatchStatus.PENDING,
            confirmed_by=None,
            confirmed_at=None,
            reject_reason=None,
        )

        for item_id, changes in planned.items():
            item = items_by_id[item_id]
            for field, value in changes.items():
                setattr(item, field, value)
        session.flush()

        log_operation(
            logger,
            operation="resubmit_batch",
            outcome="success",
            batch_id=batch_id,
            actor=submitted_by,
            edited_items=sorted(planned),
        )
        return batch_to_dict(batch)
