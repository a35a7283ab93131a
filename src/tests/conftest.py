"""Pytest configuration and fixtures for service layer tests."""

from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session

from factory_ledger.models.base import Base
from factory_ledger.services import product_catalog_service


@pytest.fixture(scope="function")
def test_db():
    """Provide a clean test database for each test function.

    This fixture:
    1. Creates an in-memory SQLite database
    2. Creates all tables
    3. Points the global session factory at it
    4. Drops all tables after the test completes
    """
    engine = create_engine("sqlite:///:memory:", echo=False)

    Base.metadata.create_all(engine)

    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    Session = scoped_session(session_factory)

    # Monkey-patch the global session factory for tests
    import factory_ledger.services.database as db_module

    original_get_session_factory = db_module.get_session_factory
    db_module.get_session_factory = lambda: Session

    yield Session

    Session.remove()
    Base.metadata.drop_all(engine)
    engine.dispose()

    db_module.get_session_factory = original_get_session_factory


@pytest.fixture
def production_date():
    """Date the test batches were produced on."""
    return date(2024, 3, 1)


@pytest.fixture
def products(test_db):
    """Provide a small catalog.

    Creates:
    - product_a, product_b: finished products without spec
    - fin_y: finished product "Chili Oil 500g"
    - semi_x: semi-finished product "Chili Oil Bulk 20kg"
    - semi_z: semi-finished product "Garlic Paste Bulk"
    """

    class Catalog:
        product_a = product_catalog_service.create_product("Product A", "finished")
        product_b = product_catalog_service.create_product("Product B", "finished")
        fin_y = product_catalog_service.create_product("Chili Oil", "finished", spec="500g")
        semi_x = product_catalog_service.create_product(
            "Chili Oil Bulk", "semi_finished", spec="20kg"
        )
        semi_z = product_catalog_service.create_product("Garlic Paste Bulk", "semi_finished")

    return Catalog
