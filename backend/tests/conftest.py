"""
Pytest fixtures for posledger backend tests.

Provides test database setup, seeded stock items and a test client with
operator headers.
"""

from decimal import Decimal

import pytest
from posledger import create_app
from posledger.extensions import db
from posledger.services import inventory_service, rates_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BASE_CURRENCY': 'BS',
        'TAX_RATE_PERCENT': Decimal('10'),
        'MAX_RECEIPT_IMAGE_BYTES': 1024,
        'LOW_STOCK_THRESHOLD': Decimal('5'),
    })

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
def rates(db_session):
    """Default rate table: USD 36.5, EUR 39.2."""
    return rates_service.ensure_default_rates(user="admin")


@pytest.fixture(scope='function')
def make_item(db_session):
    """Factory: create a stock item as admin, overriding any field."""
    def _make(**overrides):
        data = {
            "name": "Widget",
            "barcode": "000111",
            "buying_price_cents": 500,
            "selling_price_cents": 1000,
            "quantity": 10,
            "unit": "item",
            "includes_tax": False,
            "discount_percent": 0,
        }
        data.update(overrides)
        return inventory_service.create_item(data, "admin")

    return _make


@pytest.fixture(scope='function')
def item_a(make_item):
    """10.00 each, 10 on hand, untaxed, no discount."""
    return make_item(name="Item A", barcode="A-001", selling_price_cents=1000, quantity=10)


@pytest.fixture(scope='function')
def item_b(make_item):
    """20.00 each, 5 on hand, 10% discount available, taxed."""
    return make_item(
        name="Item B",
        barcode="B-001",
        selling_price_cents=2000,
        quantity=5,
        includes_tax=True,
        discount_percent=10,
    )


@pytest.fixture(scope='function')
def admin_headers():
    return {"X-Operator-Id": "admin", "X-Operator-Role": "admin"}


@pytest.fixture(scope='function')
def cashier_headers():
    return {"X-Operator-Id": "cashier", "X-Operator-Role": "cashier"}
