"""
Pytest fixtures for counterpos backend tests.

Provides the app (SQLite in memory), a fresh database per test, a test
client, and small factories for catalog and customer rows.
"""

import pytest

from counterpos import create_app
from counterpos.extensions import db
from counterpos.models import CompanyProfile, Customer, Product, ProductType

TEST_NAMESPACE = "test-shop"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'APP_NAMESPACE': TEST_NAMESPACE,
        'TRANSACTION_BACKOFF_BASE': 0,
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
def profile(db_session):
    p = CompanyProfile(
        namespace=TEST_NAMESPACE,
        name="Sofalia Goma",
        invoice_prefix="FAC-",
        refund_prefix="REM-",
        deposit_prefix="DEP-",
        invoice_footer_message="Merci pour votre achat !",
        last_invoice_number=0,
    )
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture(scope='function')
def make_simple(db_session):
    def _make(name="Savon", price=1000, quantity=10, reorder_threshold=0, namespace=TEST_NAMESPACE):
        p = Product(
            namespace=namespace,
            product_type=ProductType.SIMPLE.value,
            name=name,
            price=price,
            quantity=quantity,
            reorder_threshold=reorder_threshold,
        )
        db_session.add(p)
        db_session.commit()
        return p
    return _make


@pytest.fixture(scope='function')
def make_variant_product(db_session):
    def _make(name="Pagne", base_price=2000, variants=None):
        p = Product(
            namespace=TEST_NAMESPACE,
            product_type=ProductType.VARIANT.value,
            name=name,
            base_price=base_price,
            reorder_threshold=0,
            variants=variants or [
                {"id": "v1", "name": "Rouge", "price_modifier": 0, "quantity": 5, "reorder_threshold": 1},
                {"id": "v2", "name": "Bleu", "price_modifier": 500, "quantity": 5, "reorder_threshold": 1},
            ],
        )
        db_session.add(p)
        db_session.commit()
        return p
    return _make


@pytest.fixture(scope='function')
def make_pack(db_session):
    def _make(name, price, pack_items):
        p = Product(
            namespace=TEST_NAMESPACE,
            product_type=ProductType.PACK.value,
            name=name,
            price=price,
            reorder_threshold=0,
            pack_items=pack_items,
        )
        db_session.add(p)
        db_session.commit()
        return p
    return _make


@pytest.fixture(scope='function')
def make_customer(db_session):
    def _make(name="Awa Diop", balance=0, namespace=TEST_NAMESPACE):
        c = Customer(namespace=namespace, name=name, balance=balance)
        db_session.add(c)
        db_session.commit()
        return c
    return _make
