"""
Batch store for production batches and their line items.

This module provides:
- create_batch(): persist a new pending batch with its line items
- get_batch(): fetch a batch with items, failing with BatchNotFound
- compare_and_set_status(): guarded status update for the approval workflow

compare_and_set_status() is the only way a batch's status changes. It issues
a single ``UPDATE ... WHERE id = :id AND status = :expected`` so that of two
concurrent writers exactly one wins; the loser sees a conflict instead of
overwriting the winner's transition.
"""

import logging
from contextlib import nullcontext
from datetime import date
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from factory_ledger.models import (
    BatchStatus,
    LineItemCategory,
    ProductionBatch,
    ProductionLineItem,
)
from factory_ledger.services.database import session_scope
from factory_ledger.services.exceptions import BatchNotFound, DatabaseError
from factory_ledger.services.logging_utils import get_service_logger, log_operation
from factory_ledger.utils.datetime_utils import utc_now

logger = get_service_logger(__name__)

# Columns a status transition is allowed to touch besides status itself
TRANSITION_FIELDS = ("confirmed_by", "confirmed_at", "reject_reason")


def _status_value(status: Union[BatchStatus, str]) -> str:
    return BatchStatus(status).value


def _log_database_error(operation: str, error: Exception, **context) -> None:
    log_operation(
        logger,
        operation=operation,
        outcome="database_error",
        level=logging.ERROR,
        error=str(error),
        **context,
    )


def create_batch(
    production_date: date,
    submitted_by: str,
    items: List[Dict[str, Any]],
    *,
    remark: Optional[str] = None,
    session=None,
) -> ProductionBatch:
    """
    Persist a new production batch in the pending state.

    Items are stored in the given order; list position becomes the item's
    ``position``. Validation is the caller's job (see production_intake_service).

    Args:
        production_date: Date the goods were produced
        submitted_by: Submitting actor
        items: Dicts with product_id, quantity and category
        remark: Optional submitter note
        session: Optional database session

    Returns:
        The flushed ProductionBatch (id assigned)

    Raises:
        DatabaseError: If the batch could not be stored
    """
    try:
        cm = nullcontext(session) if session is not None else session_scope()
        with cm as session:
            batch = ProductionBatch(
                production_date=production_date,
                status=BatchStatus.PENDING.value,
                submitted_by=submitted_by,
                remark=remark,
            )
            for position, item in enumerate(items):
                batch.items.append(
                    ProductionLineItem(
                        position=position,
                        product_id=item["product_id"],
                        quantity=item["quantity"],
                        category=LineItemCategory(item["category"]).value,
                    )
                )
            session.add(batch)
            session.flush()
            return batch
    except SQLAlchemyError as e:
        _log_database_error("create_batch", e)
        raise DatabaseError(f"Failed to store production batch: {e}", e) from e


def get_batch(batch_id: int, *, session=None) -> ProductionBatch:
    """
    Fetch a production batch with its line items.

    Raises:
        BatchNotFound: If the batch doesn't exist
        DatabaseError: If the batch could not be read
    """
    try:
        cm = nullcontext(session) if session is not None else session_scope()
        with cm as session:
            batch = (
                session.query(ProductionBatch)
                .options(selectinload(ProductionBatch.items))
                .filter(ProductionBatch.id == batch_id)
                .first()
            )
    except SQLAlchemyError as e:
        _log_database_error("get_batch", e, batch_id=batch_id)
        raise DatabaseError(f"Failed to load production batch {batch_id}: {e}", e) from e
    if batch is None:
        raise BatchNotFound(batch_id)
    return batch


def compare_and_set_status(
    batch_id: int,
    expected: Union[BatchStatus, str],
    new: Union[BatchStatus, str],
    *,
    session,
    **metadata: Any,
) -> bool:
    """
    Move a batch from ``expected`` to ``new`` status if it is still ``expected``.

    The session is required: the status change must commit or roll back
    together with whatever else the caller does in the same transaction
    (for confirmation, the ledger entries).

    Args:
        batch_id: Batch to update
        expected: Status the batch must currently have
        new: Status to set
        session: Database session owning the transaction
        **metadata: Values for confirmed_by, confirmed_at and/or reject_reason.
            Pass None to clear a field.

    Returns:
        True if the row was updated, False on conflict (status was not
        ``expected``, or the batch doesn't exist)

    Raises:
        ValueError: If metadata names a field outside TRANSITION_FIELDS
    """
    unknown = set(metadata) - set(TRANSITION_FIELDS)
    if unknown:
        raise ValueError(f"Unsupported transition fields: {sorted(unknown)}")

    values = {
        ProductionBatch.status: _status_value(new),
        ProductionBatch.updated_at: utc_now(),
    }
    for field, value in metadata.items():
        values[getattr(ProductionBatch, field)] = value

    updated = (
        session.query(ProductionBatch)
        .filter(
            ProductionBatch.id == batch_id,
            ProductionBatch.status == _status_value(expected),
        )
        .update(values, synchronize_session="fetch")
    )
    return updated == 1
