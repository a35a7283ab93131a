"""
StockRecord model for the append-only product movement ledger.

Each row is one physical stock movement. Rows are only ever inserted; the
service layer has no update or delete path for them.

Note: There is deliberately no foreign key to ProductionBatch. The batch
reference is carried in the remark text for human traceability only.
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Date,
    ForeignKey,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel


class StockRecord(BaseModel):
    """
    Ledger entry for a single stock movement.

    Attributes:
        product_id: Foreign key to the Product moved
        direction: "in" or "out" (see LedgerDirection)
        quantity: Units moved (must be > 0)
        effective_date: Date the movement is booked on
        remark: Human-readable description of the movement
        actor: Actor who caused the movement to be booked
    """

    __tablename__ = "stock_records"

    product_id = Column(
        Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False
    )
    direction = Column(String(3), nullable=False)
    quantity = Column(Integer, nullable=False)
    effective_date = Column(Date, nullable=False)
    remark = Column(Text, nullable=True)
    actor = Column(String(64), nullable=False)

    product = relationship("Product")

    __table_args__ = (
        Index("idx_stock_record_product", "product_id"),
        Index("idx_stock_record_effective_date", "effective_date"),
        CheckConstraint("quantity > 0", name="ck_stock_record_quantity_positive"),
        CheckConstraint("direction IN ('in', 'out')", name="ck_stock_record_direction_valid"),
    )

    def __repr__(self) -> str:
        return (
            f"StockRecord(id={self.id}, product_id={self.product_id}, "
            f"direction={self.direction}, quantity={self.quantity})"
        )
