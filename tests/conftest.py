"""
Shared fixtures: an app wired to an in-memory SQLite database and in-process
token stores, plus authenticated header sets.
"""

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import create_app
from app.services.auth import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_SUPERADMIN
from app.services.security import MemoryTokenStore
from tests.helpers import (
    TEST_ADMIN_PASSWORD,
    TEST_JWT_SECRET,
    bearer,
    make_database,
    product_payload,
    with_csrf,
)


@pytest.fixture
def settings():
    return Settings(
        environment="testing",
        database_url="sqlite+aiosqlite://",
        jwt_secret=TEST_JWT_SECRET,
        create_schema_on_startup=True,
        default_admin_username="admin",
        default_admin_password=TEST_ADMIN_PASSWORD,
        frontend_url="http://localhost:3000",
    )


@pytest.fixture
def database():
    return make_database()


@pytest.fixture
def rate_limit_rules():
    """None means the production rule set."""
    return None


@pytest.fixture
def app(settings, database, rate_limit_rules):
    return create_app(
        settings=settings,
        database=database,
        csrf_store=MemoryTokenStore(),
        rate_limit_store=MemoryTokenStore(),
        rate_limit_rules=rate_limit_rules,
    )


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def anon_headers(client):
    return with_csrf(client, {})


@pytest.fixture
def admin_headers(client):
    """The bootstrap superadmin."""
    return with_csrf(client, bearer("admin", ROLE_SUPERADMIN))


@pytest.fixture
def editor_headers(client):
    """A regular (non-super) admin."""
    return with_csrf(client, bearer("editor", ROLE_ADMIN))


@pytest.fixture
def customer_headers(client):
    return with_csrf(client, bearer("buyer@example.com", ROLE_CUSTOMER))


@pytest.fixture
def other_customer_headers(client):
    return with_csrf(client, bearer("other@example.com", ROLE_CUSTOMER))


@pytest.fixture
def create_product(client, admin_headers):
    def _create(**overrides) -> dict:
        response = client.post("/api/products", json=product_payload(**overrides), headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()
    return _create
