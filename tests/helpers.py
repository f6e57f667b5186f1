"""
Test helpers shared by the API test modules.
"""

from datetime import timedelta

from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import Database
from app.services.auth import create_token
from app.services.database.retry import RetryPolicy
from app.services.security import CSRF_HEADER

TEST_JWT_SECRET = "test-jwt-secret"
TEST_ADMIN_PASSWORD = "admin-pass-123"


def make_database() -> Database:
    """Single shared in-memory SQLite connection; no retry delays."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    return Database(engine, retry_policy=RetryPolicy(max_retries=0), probe_max_retries=0)


def bearer(username: str, role: str) -> dict:
    token = create_token(username, role, TEST_JWT_SECRET, timedelta(hours=1))
    return {"Authorization": f"Bearer {token}"}


def with_csrf(client: TestClient, headers: dict) -> dict:
    """Fetch the CSRF token for the session these headers identify."""
    response = client.get("/api/csrf-token", headers=headers)
    assert response.status_code == 200
    return {**headers, CSRF_HEADER: response.json()["csrfToken"]}


def product_payload(**overrides) -> dict:
    payload = {
        "sku": "LEI-M12-A-5P-M",
        "name": "M12 A-Coded 5-Pin Male Connector",
        "category": "M12 Connectors",
        "description": "<p>Field wireable connector.</p>",
        "coding": "A",
        "pins": 5,
        "ipRating": "IP67",
        "gender": "Male",
        "connectorType": "M12",
        "specifications": {
            "material": "Nickel-plated brass",
            "voltage": "250V AC/DC",
            "current": "4A",
            "temperatureRange": "-40°C to +85°C",
        },
        "inStock": True,
        "stockQuantity": 150,
    }
    payload.update(overrides)
    return payload


def order_payload(**overrides) -> dict:
    payload = {
        "companyName": "Acme Automation",
        "contactName": "Jordan Lee",
        "email": "Buyer@Example.com",
        "phone": "+49 170 1234567",
        "items": [
            {"productId": "1", "sku": "LEI-M12-A-5P-M", "name": "M12 A-Coded 5-Pin Male", "quantity": 25},
        ],
    }
    payload.update(overrides)
    return payload


def inquiry_payload(**overrides) -> dict:
    payload = {
        "name": "Sam Rivera",
        "email": "sam@example.com",
        "subject": "Bulk pricing",
        "message": "We need 500 M12 connectors per month.",
    }
    payload.update(overrides)
    return payload


class FakeClock:
    """Settable time source for stores and limiters."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
