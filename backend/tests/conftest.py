"""
Pytest fixtures for PORES backend tests.

Provides an in-memory app, a per-test clean database, two independent
stores (tenants) and auth helpers.
"""

import pytest

from pores import create_app
from pores.extensions import db
from pores.services import auth_service, products_service, token_service, worker_service

ADMIN_KEY = "test-admin-key"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'AUTH_SECRET': 'test-auth-secret',
        'ADMIN_API_KEY': ADMIN_KEY,
        'BCRYPT_ROUNDS': 4,
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
def store_a(db_session):
    """Store A (first tenant)."""
    store, _ = auth_service.signup("owner@store-a.com", "secret-a", "Store A Supermarket")
    return store


@pytest.fixture(scope='function')
def store_b(db_session):
    """Store B (second tenant)."""
    store, _ = auth_service.signup("owner@store-b.com", "secret-b", "Store B Pharmacy")
    return store


@pytest.fixture(scope='function')
def token_a(store_a):
    return token_service.create_store_token(store_a.id, store_a.email)


@pytest.fixture(scope='function')
def token_b(store_b):
    return token_service.create_store_token(store_b.id, store_b.email)


@pytest.fixture(scope='function')
def worker_a(store_a):
    """Worker in Store A with PIN 1234."""
    return worker_service.create_worker(store_a.id, "Ada", "1234")


@pytest.fixture(scope='function')
def worker_b(store_b):
    """Worker in Store B with PIN 1234 (same PIN, different store)."""
    return worker_service.create_worker(store_b.id, "Bola", "1234")


def make_product(store_id: int, **overrides):
    payload = {
        "name": "Peak Milk",
        "brand": "FrieslandCampina",
        "category": "Dairy",
        "cost_price": 200,
        "selling_price": 250,
        "quantity": 10,
    }
    payload.update(overrides)
    product, _ = products_service.create_or_merge_product(store_id, payload)
    return product


@pytest.fixture(scope='function')
def product_a(store_a):
    """Milk in Store A: cost 200, price 250, 10 in stock."""
    return make_product(store_a.id)


@pytest.fixture(scope='function')
def product_a2(store_a):
    """Rice in Store A: cost 450, price 600, 20 in stock."""
    return make_product(
        store_a.id,
        name="Rice 1kg",
        brand="Mama Gold",
        category="Grains",
        cost_price=450,
        selling_price=600,
        quantity=20,
    )


@pytest.fixture(scope='function')
def product_b(store_b):
    return make_product(store_b.id, name="Paracetamol", brand="Emzor", category="Medicine")


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def store_headers(store_id: int) -> dict:
    """Helper for routes that accept the x-store-id header."""
    return {'x-store-id': str(store_id)}


def admin_headers(key: str = ADMIN_KEY) -> dict:
    return {'X-Admin-Key': key}
