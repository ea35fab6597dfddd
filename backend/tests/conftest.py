"""
Pytest fixtures for the exhibition backend tests.

Provides the application on in-memory SQLite, a per-test table wipe,
owner/employee/product fixtures and bearer token helpers.
"""

import pytest

from exhibition import create_app
from exhibition.extensions import db
from exhibition.models import User, Product
from exhibition.roles import Role
from exhibition.services.access_policy import Principal
from exhibition.services.auth_service import hash_password
from exhibition.services import session_service


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'INVOICE_DAY_TIMEZONE': 'UTC',
        'WRITE_RETRY_ATTEMPTS': 3,
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


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(PASSWORD)


def make_user(db_session, password_hash, username: str, role: Role, **kwargs) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=password_hash,
        role=role.value,
        is_active=kwargs.pop("is_active", True),
        **kwargs,
    )
    db_session.add(user)
    db_session.commit()
    return user


def make_product(db_session, name: str, price_cents: int, stock_quantity: int, **kwargs) -> Product:
    product = Product(name=name, price_cents=price_cents, stock_quantity=stock_quantity, **kwargs)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def owner(db_session, password_hash):
    return make_user(db_session, password_hash, "owner", Role.OWNER, full_name="Owner")


@pytest.fixture(scope='function')
def second_owner(db_session, password_hash):
    return make_user(db_session, password_hash, "owner2", Role.OWNER)


@pytest.fixture(scope='function')
def employee(db_session, password_hash):
    return make_user(db_session, password_hash, "emp1", Role.EMPLOYEE, full_name="Employee One")


@pytest.fixture(scope='function')
def other_employee(db_session, password_hash):
    return make_user(db_session, password_hash, "emp2", Role.EMPLOYEE)


@pytest.fixture(scope='function')
def product_a(db_session):
    """Price 10.00, stock 10."""
    return make_product(db_session, "Product A", 1000, 10)


@pytest.fixture(scope='function')
def product_b(db_session):
    """Price 2.50, stock 3."""
    return make_product(db_session, "Product B", 250, 3)


@pytest.fixture(scope='function')
def owner_principal(owner):
    return Principal.for_user(owner)


@pytest.fixture(scope='function')
def employee_principal(employee):
    return Principal.for_user(employee)


def token_for(user: User) -> str:
    """Issue a session token directly (skips the bcrypt check in /login)."""
    _, token = session_service.create_session(user.id)
    return token


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def owner_headers(owner):
    return auth_headers(token_for(owner))


@pytest.fixture(scope='function')
def employee_headers(employee):
    return auth_headers(token_for(employee))


@pytest.fixture(scope='function')
def other_employee_headers(other_employee):
    return auth_headers(token_for(other_employee))
