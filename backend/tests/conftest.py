"""
Pytest fixtures for back-office backend tests.

Provides an in-memory application, a per-test table wipe, the Flask test
client and small factories for the rows most tests need.
"""

from decimal import Decimal

import pytest
from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import Customer, Material, Product, Setting


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'CORS_ALLOWED_ORIGINS': ['http://localhost:3000'],
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
def settings_row(db_session):
    """The singleton settings row `flask system init` would create."""
    settings = Setting(company_name="Candle Co", low_stock_threshold=10)
    db_session.add(settings)
    db_session.commit()
    return settings


@pytest.fixture(scope='function')
def make_customer(db_session):
    def _make(name="Maria Silva", **kwargs):
        customer = Customer(name=name, jar_credits=kwargs.pop("jar_credits", 0), **kwargs)
        db_session.add(customer)
        db_session.commit()
        return customer
    return _make


@pytest.fixture(scope='function')
def make_product(db_session):
    def _make(name="Lavender Candle", price="25.00", quantity=20, category="Candles", **kwargs):
        product = Product(
            name=name,
            price=Decimal(price),
            quantity=quantity,
            category=category,
            **kwargs,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def make_material(db_session):
    def _make(name="Soy Wax", unit="kg", purchased="10.000", cost="150.00", **kwargs):
        material = Material(
            name=name,
            unit=unit,
            total_quantity_purchased=Decimal(purchased),
            current_stock=kwargs.pop("current_stock", Decimal(purchased)),
            low_stock_alert=kwargs.pop("low_stock_alert", Decimal("1.000")),
            total_cost_paid=Decimal(cost),
            cost_per_unit=(Decimal(cost) / Decimal(purchased)).quantize(Decimal("0.0001")),
            **kwargs,
        )
        db_session.add(material)
        db_session.commit()
        return material
    return _make


@pytest.fixture(scope='function')
def customer(make_customer):
    return make_customer()


@pytest.fixture(scope='function')
def stock_of(db_session):
    """Stock as stored, read with a column query (not from the identity map)."""
    def _stock(product_id: int) -> int:
        return db_session.query(Product.quantity).filter(Product.id == product_id).scalar()
    return _stock
