"""
Database models package.

This package contains all SQLAlchemy ORM models for the application.
"""

from .base import Base, BaseModel
from .enums import ProductWarehouse, BatchStatus, LineItemCategory, LedgerDirection
from .product import Product
from .production_batch import ProductionBatch
from .production_line_item import ProductionLineItem
from .stock_record import StockRecord

__all__ = [
    "Base",
    "BaseModel",
    # Enums
    "ProductWarehouse",
    "BatchStatus",
    "LineItemCategory",
    "LedgerDirection",
    # Catalog
    "Product",
    # Production confirmation
    "ProductionBatch",
    "ProductionLineItem",
    # Ledger
    "StockRecord",
]
