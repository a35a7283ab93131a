"""
Derivation of ledger entries from a production batch.

Pure functions: no database access. Given a batch's line items, the pairing
of its relabel items and the product labels, produce the LedgerEntryDraft
list that confirming the batch will write.

Rules:
- finished / semi_finished item -> one inbound entry for the item's product
- relabel_out item -> one outbound entry for the semi-finished product
- relabel_in item -> one inbound entry for the finished product

Every entry is dated to the batch's production date, not the confirmation
time, and its remark ends with the batch reference.
"""

from datetime import date
from typing import Any, Mapping, List, Optional, Sequence

from factory_ledger.models import LedgerDirection, LineItemCategory
from factory_ledger.services.ledger_writer import LedgerEntryDraft
from factory_ledger.services.pairing_resolver import PairingResult
from factory_ledger.utils.constants import (
    BATCH_REFERENCE_TEMPLATE,
    REMARK_PRODUCTION_INBOUND,
    REMARK_RELABEL_IN_GENERIC,
    REMARK_RELABEL_IN_PAIRED,
    REMARK_RELABEL_OUT_GENERIC,
    REMARK_RELABEL_OUT_PAIRED,
    UNKNOWN_PRODUCT_LABEL,
)


def product_label(product_id: int, labels: Mapping[int, Any]) -> str:
    """
    Label text for a product, or a placeholder if it could not be resolved.

    Args:
        product_id: Product to describe
        labels: Mapping of product id to an object with a ``text`` attribute
            (see product_catalog_service.ProductLabel)
    """
    label = labels.get(product_id)
    if label is None:
        return UNKNOWN_PRODUCT_LABEL.format(product_id=product_id)
    return label.text


def _with_batch_reference(text: str, batch_id: Optional[int]) -> str:
    if batch_id is None:
        return text
    return f"{text} - {BATCH_REFERENCE_TEMPLATE.format(batch_id=batch_id)}"


def build_remark(item, pairing: PairingResult, labels: Mapping[int, Any], batch_id=None) -> str:
    """
    Remark text for the ledger entry derived from ``item``.

    Raises:
        ValueError: If the item's category is not a known LineItemCategory
    """
    category = LineItemCategory(item.category)

    if category in (LineItemCategory.FINISHED, LineItemCategory.SEMI_FINISHED):
        text = REMARK_PRODUCTION_INBOUND
    elif category == LineItemCategory.RELABEL_OUT:
        partner = pairing.partner_of(item)
        if partner is None:
            text = REMARK_RELABEL_OUT_GENERIC
        else:
            text = REMARK_RELABEL_OUT_PAIRED.format(
                label=product_label(partner.product_id, labels)
            )
    elif category == LineItemCategory.RELABEL_IN:
        partner = pairing.partner_of(item)
        if partner is None:
            text = REMARK_RELABEL_IN_GENERIC
        else:
            text = REMARK_RELABEL_IN_PAIRED.format(
                label=product_label(partner.product_id, labels)
            )
    else:
        raise ValueError(f"Unhandled line item category: {category}")

    return _with_batch_reference(text, batch_id)


def direction_for(category) -> LedgerDirection:
    """Ledger direction for a line item category."""
    category = LineItemCategory(category)
    if category == LineItemCategory.RELABEL_OUT:
        return LedgerDirection.OUT
    if category in (
        LineItemCategory.FINISHED,
        LineItemCategory.SEMI_FINISHED,
        LineItemCategory.RELABEL_IN,
    ):
        return LedgerDirection.IN
    raise ValueError(f"Unhandled line item category: {category}")


def derive_ledger_entries(
    items: Sequence[Any],
    pairing: PairingResult,
    labels: Mapping[int, Any],
    *,
    production_date: date,
    actor: str,
    batch_id: Optional[int] = None,
) -> List[LedgerEntryDraft]:
    """
    Turn a batch's line items into ledger entry drafts.

    Args:
        items: Line items (``id``, ``product_id``, ``quantity``, ``category``)
        pairing: Result of pairing_resolver.pair_relabel_items(items)
        labels: Product labels keyed by product id; missing ids get a placeholder
        production_date: The batch's production date (entry effective date)
        actor: Confirming actor recorded on every entry
        batch_id: Batch id quoted in each remark

    Returns:
        One LedgerEntryDraft per line item, in item order
    """
    drafts = []
    for item in items:
        drafts.append(
            LedgerEntryDraft(
                product_id=item.product_id,
                direction=direction_for(item.category),
                quantity=item.quantity,
                effective_date=production_date,
                remark=build_remark(item, pairing, labels, batch_id),
                actor=actor,
                source_item_id=item.id,
            )
        )
    return drafts
