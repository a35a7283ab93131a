"""
Production submission intake.

Turns a submitter's production form into a pending ProductionBatch.

Input rows look like::

    {"product_id": 3, "quantity": 10, "category": "finished"}
    {"product_id": 7, "quantity": 4, "category": "relabel_out", "target_product_id": 3}

Blank rows (no product, or quantity not > 0) are dropped, as the form always
carries at least one empty row. A relabel_out row describes one physical
action and is stored as two line items with the same quantity: a relabel_in
item for the target finished product, kept in form order, and a relabel_out
item for the semi-finished product, appended after all other items.
"""

import logging
from contextlib import nullcontext
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from factory_ledger.models import LineItemCategory, ProductWarehouse
from factory_ledger.services import batch_store, product_catalog_service
from factory_ledger.services.batch_query_service import batch_to_dict
from factory_ledger.services.database import session_scope
from factory_ledger.services.exceptions import DatabaseError, ValidationError
from factory_ledger.services.logging_utils import get_service_logger, log_operation

logger = get_service_logger(__name__)

# Warehouse each product role must come from
_SOURCE_WAREHOUSE = {
    LineItemCategory.FINISHED: ProductWarehouse.FINISHED,
    LineItemCategory.SEMI_FINISHED: ProductWarehouse.SEMI_FINISHED,
    LineItemCategory.RELABEL_OUT: ProductWarehouse.SEMI_FINISHED,
}
_RELABEL_TARGET_WAREHOUSE = ProductWarehouse.FINISHED


def _parse_quantity(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        return None
    return quantity if quantity > 0 else None


def _valid_rows(rows: List[Dict[str, Any]]) -> List[Tuple[int, Dict[str, Any], int]]:
    """Rows that name a product and a positive quantity.

    Each is returned as (form row number, row, parsed quantity); row numbers
    count from 1 over all submitted rows, blank ones included.
    """
    valid = []
    for number, row in enumerate(rows, start=1):
        quantity = _parse_quantity(row.get("quantity"))
        if row.get("product_id") and quantity is not None:
            valid.append((number, row, quantity))
    return valid


def build_line_items(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Validate form rows and expand them into line item dicts.

    Args:
        rows: Submitted form rows

    Returns:
        Line item dicts (product_id, quantity, category) in storage order

    Raises:
        ValidationError: If no valid row remains, a category is unknown or
            not submittable, or a relabel_out row lacks its target product
    """
    valid = _valid_rows(rows)
    if not valid:
        raise ValidationError(["At least one line item with a product and quantity > 0 is required"])

    errors = []
    main_items = []
    relabel_out_items = []

    for index, row, quantity in valid:
        try:
            category = LineItemCategory(row.get("category"))
        except ValueError:
            errors.append(f"Row {index}: unknown category {row.get('category')!r}")
            continue

        if category == LineItemCategory.RELABEL_IN:
            errors.append(
                f"Row {index}: relabel_in items are created from a relabel_out row "
                "and cannot be submitted directly"
            )
            continue

        if category == LineItemCategory.RELABEL_OUT:
            target_id = row.get("target_product_id")
            if not target_id:
                errors.append(f"Row {index}: relabel_out requires a target finished product")
                continue
            main_items.append(
                {
                    "product_id": target_id,
                    "quantity": quantity,
                    "category": LineItemCategory.RELABEL_IN.value,
                }
            )
            relabel_out_items.append(
                {
                    "product_id": row["product_id"],
                    "quantity": quantity,
                    "category": LineItemCategory.RELABEL_OUT.value,
                }
            )
            continue

        main_items.append(
            {"product_id": row["product_id"], "quantity": quantity, "category": category.value}
        )

    if errors:
        raise ValidationError(errors)

    return main_items + relabel_out_items


def check_warehouses(items: List[Dict[str, Any]], session) -> None:
    """Raise ValidationError if a product is used from the wrong warehouse."""
    products = product_catalog_service.require_products(
        [item["product_id"] for item in items], session=session
    )
    errors = []
    for item in items:
        category = LineItemCategory(item["category"])
        if category == LineItemCategory.RELABEL_IN:
            expected = _RELABEL_TARGET_WAREHOUSE
        else:
            expected = _SOURCE_WAREHOUSE[category]
        product = products[item["product_id"]]
        if product.warehouse != expected.value:
            errors.append(
                f"Product '{product.name}' is stocked as {product.warehouse}, "
                f"expected {expected.value} for a {category.value} item"
            )
    if errors:
        raise ValidationError(errors)


def submit_batch(
    production_date: date,
    rows: List[Dict[str, Any]],
    submitted_by: str,
    *,
    remark: Optional[str] = None,
    session=None,
) -> Dict[str, Any]:
    """
    Create a pending production batch from submitted form rows.

    Nothing is persisted when validation fails.

    Args:
        production_date: Date the goods were actually produced
        rows: Form rows (product_id, quantity, category, target_product_id)
        submitted_by: Submitting actor
        remark: Optional submitter note (blank becomes None)
        session: Optional database session

    Returns:
        Batch dictionary (see batch_query_service.batch_to_dict)

    Raises:
        ValidationError: If the rows are invalid
        ProductNotFound: If a referenced product doesn't exist
        DatabaseError: If the batch could not be stored
    """
    if production_date is None:
        raise ValidationError(["Production date is required"])
    if not submitted_by:
        raise ValidationError(["Submitting actor is required"])

    try:
        items = build_line_items(rows)
    except ValidationError as e:
        log_operation(
            logger,
            operation="submit_batch",
            outcome="validation_failed",
            submitted_by=submitted_by,
            errors=e.errors,
        )
        raise

    try:
        cm = nullcontext(session) if session is not None else session_scope()
        with cm as session:
            check_warehouses(items, session)
            batch = batch_store.create_batch(
                production_date,
                submitted_by,
                items,
                remark=(remark or "").strip() or None,
                session=session,
            )
            log_operation(
                logger,
                operation="submit_batch",
                outcome="success",
                batch_id=batch.id,
                submitted_by=submitted_by,
                item_count=len(items),
            )
            return batch_to_dict(batch)
    except SQLAlchemyError as e:
        log_operation(
            logger,
            operation="submit_batch",
            outcome="database_error",
            level=logging.ERROR,
            submitted_by=submitted_by,
            error=str(e),
        )
        raise DatabaseError(f"Failed to submit production batch: {e}", e) from e
