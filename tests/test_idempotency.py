"""
Tests for IdempotencyService against SQLite
"""

import pytest

from app.services.idempotency import IdempotencyService, scoped_idempotency_key
from tests.helpers import make_database


@pytest.fixture
async def service():
    database = make_database()
    await database.create_schema()
    yield IdempotencyService(database)
    await database.dispose()


class TestScopedKey:
    def test_format(self):
        assert scoped_idempotency_key("orders", "buyer@example.com", "abc") == "orders:buyer@example.com:abc"

    def test_client_key_is_truncated(self):
        key = scoped_idempotency_key("orders", "u", "k" * 500)
        assert key == "orders:u:" + "k" * 200


class TestIdempotencyService:
    async def test_unknown_key(self, service):
        assert await service.check("orders:u:missing") is None

    async def test_store_then_check(self, service):
        body = {"id": 7, "status": "pending"}

        assert await service.store("orders:u:k1", body, 201) is True
        cached = await service.check("orders:u:k1")

        assert cached.body == body
        assert cached.status_code == 201

    async def test_second_store_loses(self, service):
        assert await service.store("orders:u:k1", {"id": 1}, 201) is True
        assert await service.store("orders:u:k1", {"id": 2}, 201) is False

        assert (await service.check("orders:u:k1")).body == {"id": 1}

    async def test_expired_key_is_ignored_and_replaced(self, service):
        await service.store("orders:u:k1", {"id": 1}, 201, ttl_seconds=-1)

        assert await service.check("orders:u:k1") is None
        assert await service.store("orders:u:k1", {"id": 2}, 201) is True
        assert (await service.check("orders:u:k1")).body == {"id": 2}

    async def test_cleanup_expired(self, service):
        await service.store("orders:u:old-1", {"id": 1}, 201, ttl_seconds=-1)
        await service.store("orders:u:old-2", {"id": 2}, 201, ttl_seconds=-1)
        await service.store("orders:u:fresh", {"id": 3}, 201)

        assert await service.cleanup_expired() == 2
        assert await service.check("orders:u:fresh") is not None
