"""
Relabel pairing for production batches.

A relabel action consumes semi-finished stock (a relabel_out item) and books
it as a finished product (a relabel_in item). The batch does not record which
out item feeds which in item, so they are matched up here for the sole purpose
of writing ledger remarks that name the other side of each pair.

Matching is by quantity only, in submission order:

    for each relabel_out, in order:
        pair it with the first unconsumed relabel_in of the same quantity

There is no product-identity check. Two unrelated relabel actions that move
the same quantity can therefore have their remarks cross-attributed. Historic
remarks were generated this way, so the heuristic must stay as it is.

Pairing never decides which ledger entries are written or their quantities;
every relabel item produces its own entry whether or not it was paired.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from factory_ledger.models import LineItemCategory


@dataclass
class PairingResult:
    """Outcome of pairing a batch's relabel items.

    Attributes:
        pairs: (relabel_out, relabel_in) tuples in relabel_out order
        unpaired_outs: relabel_out items with no equal-quantity partner
        unpaired_ins: relabel_in items left over after pairing
    """

    pairs: List[Tuple[Any, Any]] = field(default_factory=list)
    unpaired_outs: List[Any] = field(default_factory=list)
    unpaired_ins: List[Any] = field(default_factory=list)
    _partners: Dict[int, Any] = field(default_factory=dict, repr=False)

    def partner_of(self, item) -> Optional[Any]:
        """Return the item paired with ``item``, or None if it is unpaired."""
        return self._partners.get(item.id)

    @property
    def paired_count(self) -> int:
        return len(self.pairs)


def _in_submission_order(items: Sequence[Any]) -> List[Any]:
    # Persisted items carry a position; plain sequences keep their own order
    if all(getattr(item, "position", None) is not None for item in items):
        return sorted(items, key=lambda item: item.position)
    return list(items)


def pair_relabel_items(items: Sequence[Any]) -> PairingResult:
    """
    Match relabel_out items with relabel_in items of equal quantity.

    Args:
        items: All line items of a batch. Each needs ``id``, ``quantity`` and
            ``category``; ``position`` is used for ordering when present.
            Non-relabel items are ignored.

    Returns:
        PairingResult

    Example:
        outs with quantities [10, 20, 10] and ins with [10, 10] give pairs
        (out#1, in#1) and (out#3, in#2); out#2 stays unpaired.
    """
    ordered = _in_submission_order(items)
    outs = [item for item in ordered if item.category == LineItemCategory.RELABEL_OUT.value]
    ins = [item for item in ordered if item.category == LineItemCategory.RELABEL_IN.value]

    result = PairingResult()
    consumed = set()

    for out_item in outs:
        match = None
        for index, in_item in enumerate(ins):
            if index not in consumed and in_item.quantity == out_item.quantity:
                match = in_item
                consumed.add(index)
                break

        if match is None:
            result.unpaired_outs.append(out_item)
            continue

        result.pairs.append((out_item, match))
        result._partners[out_item.id] = match
        result._partners[match.id] = out_item

    result.unpaired_ins = [item for index, item in enumerate(ins) if index not in consumed]
    return result
