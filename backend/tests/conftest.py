"""
Pytest fixtures for the inventory backend tests.

Provides an in-memory database, users per role, auth headers, and small
factories for ingredients, products and purchases.
"""

from decimal import Decimal

import pytest
from app import create_app
from app.extensions import db
from app.models import Ingredient, Product, RecipeItem
from app.models.auth import ROLE_ADMIN, ROLE_CASHIER, ROLE_KITCHEN
from app.services.auth_service import create_user
from app.services import purchase_service
from app.validation import PurchaseRequest, PurchaseLine

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'TX_RETRY_BACKOFF_SECONDS': 0,
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
def admin_user(db_session):
    return create_user(email="admin@pos.test", password=PASSWORD, name="Admin", role=ROLE_ADMIN)


@pytest.fixture(scope='function')
def cashier_user(db_session):
    return create_user(email="cashier@pos.test", password=PASSWORD, name="Cashier", role=ROLE_CASHIER)


@pytest.fixture(scope='function')
def kitchen_user(db_session):
    return create_user(email="kitchen@pos.test", password=PASSWORD, name="Kitchen", role=ROLE_KITCHEN)


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to login and return the bearer token."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password,
    })
    assert response.status_code == 200, response.get_json()
    return response.get_json()['token']


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.email))


@pytest.fixture(scope='function')
def cashier_headers(client, cashier_user):
    return auth_headers(get_auth_token(client, cashier_user.email))


@pytest.fixture(scope='function')
def kitchen_headers(client, kitchen_user):
    return auth_headers(get_auth_token(client, kitchen_user.email))


@pytest.fixture(scope='function')
def make_ingredient(db_session):
    def _make(name: str, unit: str = "kg", low_stock_level=None) -> Ingredient:
        ingredient = Ingredient(name=name, unit=unit, low_stock_level=low_stock_level)
        db_session.add(ingredient)
        db_session.commit()
        return ingredient
    return _make


@pytest.fixture(scope='function')
def make_product(db_session):
    def _make(name: str, price_cents: int, recipe=(), is_active: bool = True) -> Product:
        product = Product(name=name, sku=name.upper().replace(" ", "-"), price_cents=price_cents, is_active=is_active)
        db_session.add(product)
        db_session.flush()
        for ingredient, quantity in recipe:
            db_session.add(RecipeItem(
                product_id=product.id,
                ingredient_id=ingredient.id,
                quantity=Decimal(str(quantity)),
            ))
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def purchase(admin_user):
    """Record a one-line purchase: purchase(ingredient, "10", 2000)."""
    def _purchase(ingredient, quantity, total_cost_cents: int, supplier_id=None):
        request = PurchaseRequest(
            items=(PurchaseLine(
                ingredient_id=ingredient.id,
                quantity=Decimal(str(quantity)),
                total_cost_cents=total_cost_cents,
            ),),
            supplier_id=supplier_id,
        )
        return purchase_service.create_purchase(request, admin_user.id)
    return _purchase
