"""
ProductionBatch model for submitted production records.

A batch is one "we made these products" submission. It moves through the
pending -> confirmed / rejected approval states and is never deleted; it is
the audit record for the ledger entries derived from it.
"""

from sqlalchemy import (
    Column,
    String,
    Text,
    Date,
    DateTime,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel


class ProductionBatch(BaseModel):
    """
    ProductionBatch model.

    Attributes:
        production_date: Date the goods were actually produced
        status: pending, confirmed or rejected (see BatchStatus)
        submitted_by: Actor who submitted the batch
        confirmed_by: Actor who confirmed or rejected the batch
        confirmed_at: When the batch was confirmed or rejected
        reject_reason: Reason given on rejection
        remark: Free-text note from the submitter
        items: Line items in submission order
    """

    __tablename__ = "production_batches"

    production_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    submitted_by = Column(String(64), nullable=False)
    confirmed_by = Column(String(64), nullable=True)
    confirmed_at = Column(DateTime, nullable=True)
    reject_reason = Column(Text, nullable=True)
    remark = Column(Text, nullable=True)

    items = relationship(
        "ProductionLineItem",
        back_populates="batch",
        cascade="all, delete-orphan",
        order_by="ProductionLineItem.position",
    )

    __table_args__ = (
        Index("idx_production_batch_status", "status"),
        Index("idx_production_batch_submitted_by", "submitted_by"),
        Index("idx_production_batch_production_date", "production_date"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'rejected')",
            name="ck_production_batch_status_valid",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"ProductionBatch(id={self.id}, status={self.status}, "
            f"production_date={self.production_date})"
        )
