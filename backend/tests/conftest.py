"""
Pytest fixtures for the pantry backend tests.

Provides test database setup, tenant isolation fixtures (two organizations
with admin/supplier/restaurant users each), actors for service-level tests
and auth helpers for the Flask test client.
"""

import pytest

from pantry import create_app
from pantry.extensions import db
from pantry.models import Organization, Product, Provider
from pantry.services.auth_service import create_user
from pantry.services.permission_service import actor_from_user
from pantry.services import catalog_service

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'DEFAULT_TIMEZONE': 'America/Mexico_City',
    })

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh data for each test, inside an app context."""
    with app.app_context():
        # Clear all data but keep schema
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


# =============================================================================
# Tenants
# =============================================================================


@pytest.fixture(scope='function')
def org_a(db_session):
    """Organization A (first tenant)."""
    org = Organization(name="Tacos del Norte", code="tacos-del-norte", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def org_b(db_session):
    """Organization B (second tenant)."""
    org = Organization(name="Mariscos del Golfo", code="mariscos-del-golfo", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


# =============================================================================
# Users
# =============================================================================


@pytest.fixture(scope='function')
def admin_a(db_session, org_a):
    return create_user(
        org_id=org_a.id, name="Ana Admin", email="ana@tacos.mx",
        password=PASSWORD, role="admin",
    )


@pytest.fixture(scope='function')
def supplier_a(db_session, org_a):
    return create_user(
        org_id=org_a.id, name="Samuel Surtidor", email="samuel@tacos.mx",
        password=PASSWORD, role="supplier",
    )


@pytest.fixture(scope='function')
def restaurant_a(db_session, org_a):
    return create_user(
        org_id=org_a.id, name="Rita Centro", email="centro@tacos.mx",
        password=PASSWORD, role="restaurant", restaurant="Sucursal Centro",
    )


@pytest.fixture(scope='function')
def admin_b(db_session, org_b):
    return create_user(
        org_id=org_b.id, name="Beto Admin", email="beto@mariscos.mx",
        password=PASSWORD, role="admin",
    )


@pytest.fixture(scope='function')
def restaurant_b(db_session, org_b):
    return create_user(
        org_id=org_b.id, name="Bruno Puerto", email="puerto@mariscos.mx",
        password=PASSWORD, role="restaurant", restaurant="Sucursal Puerto",
    )


# =============================================================================
# Actors (service-level callers)
# =============================================================================


@pytest.fixture(scope='function')
def admin(admin_a):
    return actor_from_user(admin_a)


@pytest.fixture(scope='function')
def supplier(supplier_a):
    return actor_from_user(supplier_a)


@pytest.fixture(scope='function')
def restaurant(restaurant_a):
    return actor_from_user(restaurant_a)


@pytest.fixture(scope='function')
def other_admin(admin_b):
    return actor_from_user(admin_b)


# =============================================================================
# Catalog
# =============================================================================


@pytest.fixture(scope='function')
def walmart(admin):
    return catalog_service.create_provider(admin, name="Walmart", provider_type="supermercado")


@pytest.fixture(scope='function')
def costco(admin):
    return catalog_service.create_provider(admin, name="Costco", provider_type="mayorista")


@pytest.fixture(scope='function')
def pollo(admin, walmart) -> Product:
    return catalog_service.create_product(
        admin, name="Pollo entero", unit="kg", category="Carnes",
        default_provider_id=walmart.id, stock_level=20, min_stock_alert=5,
    )


@pytest.fixture(scope='function')
def tortillas(admin, walmart) -> Product:
    return catalog_service.create_product(
        admin, name="Tortillas", unit="paquete", category="Abarrotes",
        default_provider_id=walmart.id, stock_level=50, min_stock_alert=10,
    )


@pytest.fixture(scope='function')
def cebolla(admin) -> Product:
    """No default provider: lands in the unassigned bucket."""
    return catalog_service.create_product(
        admin, name="Cebolla", unit="kg", category="Verduras", stock_level=0,
    )


@pytest.fixture(scope='function')
def foreign_product(other_admin) -> Product:
    return catalog_service.create_product(
        other_admin, name="Camarón", unit="kg", category="Mariscos", stock_level=10,
    )


@pytest.fixture(scope='function')
def foreign_provider(other_admin) -> Provider:
    return catalog_service.create_provider(other_admin, name="Mercado del Puerto", provider_type="mercado_local")


# =============================================================================
# HTTP helpers
# =============================================================================


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password,
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_a):
    return auth_headers(get_auth_token(client, admin_a.email))


@pytest.fixture(scope='function')
def supplier_headers(client, supplier_a):
    return auth_headers(get_auth_token(client, supplier_a.email))


@pytest.fixture(scope='function')
def restaurant_headers(client, restaurant_a):
    return auth_headers(get_auth_token(client, restaurant_a.email))


@pytest.fixture(scope='function')
def other_admin_headers(client, admin_b):
    return auth_headers(get_auth_token(client, admin_b.email))
