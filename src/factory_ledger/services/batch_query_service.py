"""
Read-side queries for production batches and the stock ledger.

This module provides the data behind the submitter and confirmer screens:
- get_batch_detail(): one batch with its items
- list_pending_batches(): the confirmer's queue
- list_processed_batches(): recently confirmed/rejected batches
- list_batches_submitted_by(): a submitter's own history
- count_pending_batches(): pending count, computed on demand
- list_ledger_entries(): stock ledger rows with optional filters
"""

from contextlib import nullcontext
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import joinedload, selectinload

from factory_ledger.models import (
    BatchStatus,
    ProductionBatch,
    ProductionLineItem,
    StockRecord,
)
from factory_ledger.services import approval_rules
from factory_ledger.services.database import session_scope
from factory_ledger.services.exceptions import BatchNotFound
from factory_ledger.utils.constants import PROCESSED_HISTORY_LIMIT, SUBMITTER_HISTORY_LIMIT


def _line_item_to_dict(item: ProductionLineItem) -> Dict[str, Any]:
    result = {
        "id": item.id,
        "position": item.position,
        "product_id": item.product_id,
        "quantity": item.quantity,
        "category": item.category,
    }
    if item.product is not None:
        result["product_name"] = item.product.name
        result["product_spec"] = item.product.spec
    return result


def batch_to_dict(batch: ProductionBatch) -> Dict[str, Any]:
    """Convert a ProductionBatch (with items) to a dictionary representation."""
    return {
        "id": batch.id,
        "uuid": str(batch.uuid) if batch.uuid else None,
        "production_date": batch.production_date.isoformat() if batch.production_date else None,
        "status": batch.status,
        "is_final": approval_rules.is_final(batch.status),
        "submitted_by": batch.submitted_by,
        "confirmed_by": batch.confirmed_by,
        "confirmed_at": batch.confirmed_at.isoformat() if batch.confirmed_at else None,
        "reject_reason": batch.reject_reason,
        "remark": batch.remark,
        "created_at": batch.created_at.isoformat() if batch.created_at else None,
        "items": [_line_item_to_dict(item) for item in batch.items],
    }


def _batch_query(session):
    return session.query(ProductionBatch).options(
        selectinload(ProductionBatch.items).joinedload(ProductionLineItem.product)
    )


def get_batch_detail(batch_id: int, *, session=None) -> Dict[str, Any]:
    """
    Get a single batch with its line items.

    Raises:
        BatchNotFound: If the batch doesn't exist
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        batch = _batch_query(session).filter(ProductionBatch.id == batch_id).first()
        if batch is None:
            raise BatchNotFound(batch_id)
        return batch_to_dict(batch)


def list_pending_batches(*, session=None) -> List[Dict[str, Any]]:
    """Pending batches, newest submission first."""
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        batches = (
            _batch_query(session)
            .filter(ProductionBatch.status == BatchStatus.PENDING.value)
            .order_by(ProductionBatch.created_at.desc(), ProductionBatch.id.desc())
            .all()
        )
        return [batch_to_dict(batch) for batch in batches]


def list_processed_batches(
    *, limit: int = PROCESSED_HISTORY_LIMIT, session=None
) -> List[Dict[str, Any]]:
    """Confirmed and rejected batches, most recently processed first."""
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        batches = (
            _batch_query(session)
            .filter(ProductionBatch.status != BatchStatus.PENDING.value)
            .order_by(ProductionBatch.confirmed_at.desc(), ProductionBatch.id.desc())
            .limit(limit)
            .all()
        )
        return [batch_to_dict(batch) for batch in batches]


def list_batches_submitted_by(
    submitted_by: str, *, limit: int = SUBMITTER_HISTORY_LIMIT, session=None
) -> List[Dict[str, Any]]:
    """A submitter's batches in any state, newest first."""
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        batches = (
            _batch_query(session)
            .filter(ProductionBatch.submitted_by == submitted_by)
            .order_by(ProductionBatch.created_at.desc(), ProductionBatch.id.desc())
            .limit(limit)
            .all()
        )
        return [batch_to_dict(batch) for batch in batches]


def count_pending_batches(*, session=None) -> int:
    """Number of batches waiting for confirmation."""
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        return (
            session.query(ProductionBatch)
            .filter(ProductionBatch.status == BatchStatus.PENDING.value)
            .count()
        )


def list_ledger_entries(
    *,
    product_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    session=None,
) -> List[Dict[str, Any]]:
    """
    Query stock ledger rows with optional filters.

    Args:
        product_id: Optional filter by product
        start_date: Optional minimum effective_date (inclusive)
        end_date: Optional maximum effective_date (inclusive)
        session: Optional database session

    Returns:
        Ledger entry dictionaries ordered by effective date, then insertion
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        query = session.query(StockRecord).options(joinedload(StockRecord.product))

        if product_id:
            query = query.filter(StockRecord.product_id == product_id)
        if start_date:
            query = query.filter(StockRecord.effective_date >= start_date)
        if end_date:
            query = query.filter(StockRecord.effective_date <= end_date)

        query = query.order_by(StockRecord.effective_date, StockRecord.id)

        entries = []
        for record in query.all():
            entry = record.to_dict()
            entry["product_name"] = record.product.name if record.product else None
            entries.append(entry)
        return entries
