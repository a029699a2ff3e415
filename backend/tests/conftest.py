"""
Pytest fixtures for cashdesk backend tests.

Provides test database setup, catalog/cashier fixtures, and test client.
"""

import pytest
from cashdesk import create_app
from cashdesk.context import CashierContext
from cashdesk.extensions import db
from cashdesk.models import Product


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TAX_RATE_BPS': 700,
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
def cashier():
    return CashierContext(cashier_id=1, display_name="Cashier One")


@pytest.fixture(scope='function')
def other_cashier():
    return CashierContext(cashier_id=2, display_name="Cashier Two")


@pytest.fixture(scope='function')
def entree(db_session):
    """Product priced 100.00."""
    product = Product(name="Pad Thai", price_cents=10000)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def side(db_session):
    """Product priced 50.00."""
    product = Product(name="Spring Rolls", price_cents=5000)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def unavailable_product(db_session):
    product = Product(name="Mango Sticky Rice", price_cents=8000, is_available=False)
    db_session.add(product)
    db_session.commit()
    return product


def cashier_headers(cashier_id: int) -> dict:
    """Helper to create cashier identity headers."""
    return {'X-Cashier-Id': str(cashier_id)}
