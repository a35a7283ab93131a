"""
Product model for the product catalog.

The catalog is read-only from the point of view of production confirmation:
it resolves product names and specs for ledger remarks and tells intake
which warehouse a product belongs to.
"""

from sqlalchemy import Column, String, Index, CheckConstraint

from .base import BaseModel


class Product(BaseModel):
    """
    Product catalog entry.

    Attributes:
        name: Display name of the product
        spec: Optional packaging/size specification (e.g., "500g x 20")
        warehouse: "finished" or "semi_finished" (see ProductWarehouse)
    """

    __tablename__ = "products"

    name = Column(String(200), nullable=False)
    spec = Column(String(200), nullable=True)
    warehouse = Column(String(20), nullable=False)

    __table_args__ = (
        Index("idx_product_name", "name"),
        Index("idx_product_warehouse", "warehouse"),
        CheckConstraint(
            "warehouse IN ('finished', 'semi_finished')",
            name="ck_product_warehouse_valid",
        ),
    )

