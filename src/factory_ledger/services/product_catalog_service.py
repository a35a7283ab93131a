"""
Product catalog service.

Provides:
- Product creation and listing for the catalog screens
- lookup(): read-only name/spec resolution used to render ledger remarks
- require_products(): existence check before ledger entries are written

Session Management Pattern:
- All public functions accept session=None parameter
- If session provided, use it directly
- If session is None, create a new session via session_scope()
"""

import logging
from contextlib import nullcontext
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from factory_ledger.models import Product, ProductWarehouse
from factory_ledger.services.database import session_scope
from factory_ledger.services.exceptions import ProductNotFound, ValidationError
from factory_ledger.services.logging_utils import get_service_logger, log_operation

logger = get_service_logger(__name__)


@dataclass(frozen=True)
class ProductLabel:
    """Name and spec of a product, as shown in ledger remarks."""

    product_id: int
    name: str
    spec: Optional[str] = None

    @property
    def text(self) -> str:
        if self.spec:
            return f"{self.name} {self.spec}"
        return self.name


def create_product(
    name: str,
    warehouse: str,
    *,
    spec: Optional[str] = None,
    session=None,
) -> Dict[str, Any]:
    """
    Add a product to the catalog.

    Args:
        name: Product display name
        warehouse: "finished" or "semi_finished"
        spec: Optional specification text
        session: Optional database session

    Returns:
        Product dictionary

    Raises:
        ValidationError: If name is blank or warehouse is unknown
    """
    errors = []
    if not name or not name.strip():
        errors.append("Product name is required")
    try:
        warehouse_value = ProductWarehouse(warehouse).value
    except ValueError:
        errors.append(f"Unknown warehouse: {warehouse}")
        warehouse_value = None
    if errors:
        raise ValidationError(errors)

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        product = Product(name=name.strip(), spec=spec, warehouse=warehouse_value)
        session.add(product)
        session.flush()
        return product.to_dict()


def get_product(product_id: int, *, session=None) -> Product:
    """
    Get a product by ID.

    Raises:
        ProductNotFound: If the product doesn't exist
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        product = session.get(Product, product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product


def list_products(*, warehouse: Optional[str] = None, session=None) -> List[Dict[str, Any]]:
    """
    List catalog products ordered by warehouse then name.

    Args:
        warehouse: Optional filter ("finished" or "semi_finished")
        session: Optional database session
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        query = session.query(Product)
        if warehouse:
            query = query.filter(Product.warehouse == warehouse)
        query = query.order_by(Product.warehouse, Product.name)
        return [product.to_dict() for product in query.all()]


def lookup(product_id: int, *, session=None) -> Optional[ProductLabel]:
    """
    Resolve a product's name and spec for remark rendering.

    A lookup failure must never block a confirmation, so errors are logged
    and reported as None; callers fall back to a placeholder label.

    Returns:
        ProductLabel, or None if the product could not be resolved
    """
    try:
        cm = nullcontext(session) if session is not None else session_scope()
        with cm as session:
            product = session.get(Product, product_id)
            if product is None or not product.name:
                return None
            return ProductLabel(product_id=product.id, name=product.name, spec=product.spec)
    except SQLAlchemyError as e:
        log_operation(
            logger,
            operation="lookup_product",
            outcome="error",
            level=logging.WARNING,
            product_id=product_id,
            error=str(e),
        )
        return None


def lookup_many(product_ids: Iterable[int], *, session=None) -> Dict[int, ProductLabel]:
    """
    Resolve labels for several products.

    Products that cannot be resolved are left out of the result.
    """
    labels = {}
    for product_id in dict.fromkeys(product_ids):
        label = lookup(product_id, session=session)
        if label is not None:
            labels[product_id] = label
    return labels


def require_products(product_ids: Iterable[int], *, session=None) -> Dict[int, Product]:
    """
    Load products, failing if any is missing.

    Returns:
        Mapping of product id to Product

    Raises:
        ProductNotFound: For the first id that doesn't exist
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        found = {}
        for product_id in dict.fromkeys(product_ids):
            product = session.get(Product, product_id)
            if product is None:
                raise ProductNotFound(product_id)
            found[product_id] = product
        return found
