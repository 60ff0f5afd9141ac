"""
Pytest fixtures for back-office tests.

Provides the in-memory database, users, a seeded status catalog, devices,
cash boxes and auth headers.
"""

import pytest

from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import CashBox, Device, User
from backoffice.models.auth import ROLE_ADMIN
from backoffice.services import device_service, reseller_service, session_service
from backoffice.services.auth_service import hash_password

ADMIN_EMAIL = "admin@test.local"
PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'CHAT_AUTHORITY_EMAIL': ADMIN_EMAIL,
        'BCRYPT_LOG_ROUNDS': 4,
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
def catalog(db_session):
    """Seed the built-in device statuses."""
    device_service.seed_device_statuses()
    return device_service.load_status_catalog()


@pytest.fixture(scope='function')
def admin_user(db_session):
    user = User(
        email=ADMIN_EMAIL,
        name="Admin",
        role=ROLE_ADMIN,
        password_hash=hash_password(PASSWORD),
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def reseller(db_session, admin_user):
    return reseller_service.create_reseller(
        name="Rita Reseller",
        email="rita@test.local",
        password=PASSWORD,
        actor_id=admin_user.id,
        city="Córdoba",
    )


@pytest.fixture(scope='function')
def other_reseller(db_session, admin_user):
    return reseller_service.create_reseller(
        name="Otto Other",
        email="otto@test.local",
        password=PASSWORD,
        actor_id=admin_user.id,
    )


def make_device(imei: str, *, cost_cents: int | None = 80000, state: str = "available", model: str = "iPhone 13") -> Device:
    device = Device(imei=imei, model=model, state=state, cost_cents=cost_cents)
    db.session.add(device)
    db.session.commit()
    return device


@pytest.fixture(scope='function')
def device(db_session, catalog):
    """Available iPhone 13 costing 800.00 USD."""
    return make_device("356000000000001")


@pytest.fixture(scope='function')
def cash_box(db_session):
    box = CashBox(name="Caja USD", currency="USD", type="general")
    db_session.add(box)
    db_session.commit()
    return box


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    _, token = session_service.create_session(admin_user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def reseller_headers(reseller):
    _, token = session_service.create_session(reseller.user_id)
    return auth_headers(token)


def get_auth_token(client, email: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
