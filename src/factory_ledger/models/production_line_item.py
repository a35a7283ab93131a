"""
ProductionLineItem model for the products listed in a production batch.
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel


class ProductionLineItem(BaseModel):
    """
    One product/quantity entry within a production batch.

    Item ids survive resubmission edits so that changes stay traceable.

    Attributes:
        batch_id: Foreign key to the owning ProductionBatch
        position: Submission order within the batch (0-based)
        product_id: Foreign key to the Product concerned
        quantity: Units produced or consumed (must be > 0)
        category: finished, semi_finished, relabel_in or relabel_out
    """

    __tablename__ = "production_line_items"

    batch_id = Column(
        Integer,
        ForeignKey("production_batches.id", ondelete="CASCADE"),
        nullable=False,
    )
    position = Column(Integer, nullable=False, default=0)
    product_id = Column(
        Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False
    )
    quantity = Column(Integer, nullable=False)
    category = Column(String(20), nullable=False)

    batch = relationship("ProductionBatch", back_populates="items")
    product = relationship("Product")

    __table_args__ = (
        Index("idx_line_item_batch", "batch_id"),
        Index("idx_line_item_product", "product_id"),
        CheckConstraint("quantity > 0", name="ck_line_item_quantity_positive"),
        CheckConstraint(
            "category IN ('finished', 'semi_finished', 'relabel_in', 'relabel_out')",
            name="ck_line_item_category_valid",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"ProductionLineItem(id={self.id}, product_id={self.product_id}, "
            f"quantity={self.quantity}, category={self.category})"
        )
