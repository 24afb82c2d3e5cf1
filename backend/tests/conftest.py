"""
Pytest fixtures for stockflow backend tests.

Provides the test database, seeded locations, sample products and test client.
"""

import pytest

from stockflow import create_app
from stockflow.config import TestConfig
from stockflow.extensions import db
from stockflow.services import catalog_service, products_service, stock_service, transfer_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def locations(db_session):
    """Warehouse, kitchen and counter, keyed by code."""
    return {loc.code: loc for loc in catalog_service.ensure_default_locations()}


@pytest.fixture(scope='function')
def seller(db_session, locations):
    """An individual seller location."""
    return catalog_service.create_location("VEND01", "Vendedor 1")


@pytest.fixture(scope='function')
def flat_product(db_session, locations):
    """Flat product with 50 units in the warehouse."""
    return products_service.create_product(
        {"name": "Café molido", "price_cents": 250, "cost_cents": 120, "section": "Bebidas"},
        initial_quantity=50,
    )


@pytest.fixture(scope='function')
def variant_product(db_session, locations):
    """Variant product (sizes) with S=20, M=10 in the warehouse."""
    return products_service.create_product(
        {"name": "Camiseta", "price_cents": 1500, "cost_cents": 700, "has_variants": True},
        initial_variants=[{"name": "S", "quantity": 20}, {"name": "M", "quantity": 10}],
    )


@pytest.fixture(scope='function')
def kitchen_variants(variant_product):
    """Kitchen holds {S: 10, M: 5} of the variant product."""
    transfer_service.send_to_kitchen(
        variant_product.id,
        variant_lines=[{"name": "S", "quantity": 10}, {"name": "M", "quantity": 5}],
    )
    return variant_product


@pytest.fixture(scope='function')
def counter_flat(flat_product):
    """Counter holds 20 units of the flat product."""
    transfer_service.send_to_counter(flat_product.id, 20)
    return flat_product


@pytest.fixture(scope='function')
def balance(db_session):
    """Helper to read a product's balance at a location code."""
    def _balance(product, code: str) -> dict:
        return stock_service.get_balance(product, catalog_service.get_location(code))
    return _balance
