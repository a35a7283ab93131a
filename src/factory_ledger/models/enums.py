"""
Enumerations for production confirmation and the stock ledger.

This module contains enums used across the models and services:
- ProductWarehouse: Which warehouse a catalog product belongs to
- BatchStatus: Approval state of a production batch
- LineItemCategory: What a production line item represents
- LedgerDirection: Inbound or outbound stock movement
"""

from enum import Enum


class ProductWarehouse(str, Enum):
    """
    Warehouse a product is stocked in.

    Values:
        FINISHED: Finished goods ready for sale
        SEMI_FINISHED: Semi-finished goods awaiting labeling/packing
    """

    FINISHED = "finished"
    SEMI_FINISHED = "semi_finished"


class BatchStatus(str, Enum):
    """
    Approval state of a production batch.

    Values:
        PENDING: Submitted and waiting for a confirmer
        CONFIRMED: Approved; ledger entries written. Final.
        REJECTED: Sent back to the submitter with a reason
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class LineItemCategory(str, Enum):
    """
    Category of a production line item.

    RELABEL_IN and RELABEL_OUT only ever appear together in one batch: the
    semi-finished product consumed (out) and the finished product it was
    relabeled as (in).

    Values:
        FINISHED: Finished product produced
        SEMI_FINISHED: Semi-finished product produced
        RELABEL_IN: Finished product created by relabeling
        RELABEL_OUT: Semi-finished product consumed by relabeling
    """

    FINISHED = "finished"
    SEMI_FINISHED = "semi_finished"
    RELABEL_IN = "relabel_in"
    RELABEL_OUT = "relabel_out"


class LedgerDirection(str, Enum):
    """Direction of a stock ledger movement."""

    IN = "in"
    OUT = "out"
