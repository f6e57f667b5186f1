"""
Tests for the token stores (in-process and Redis-backed)
"""

from unittest.mock import AsyncMock, patch

import pytest

from app.config import Settings
from app.services.security.token_store import (
    MemoryTokenStore,
    RedisTokenStore,
    TokenRecord,
    create_token_store,
)
from tests.helpers import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return MemoryTokenStore(clock=clock)


class TestMemoryTokenStore:
    async def test_set_then_get(self, store):
        record = await store.set("user:alice", "token-1", ttl_seconds=60)

        assert record == TokenRecord(value="token-1", expires_at=1060.0)
        assert await store.get("user:alice") == record

    async def test_missing_key(self, store):
        assert await store.get("nobody") is None

    async def test_expired_record_is_absent_and_removed(self, store, clock):
        await store.set("user:alice", "token-1", ttl_seconds=60)
        clock.advance(60)

        assert await store.get("user:alice") is None
        assert len(store) == 0

    async def test_delete(self, store):
        await store.set("user:alice", "token-1", ttl_seconds=60)
        await store.delete("user:alice")
        await store.delete("user:alice")

        assert await store.get("user:alice") is None

    async def test_increment_counts_within_ttl(self, store, clock):
        assert await store.increment("api:anon", ttl_seconds=60) == 1
        assert await store.increment("api:anon", ttl_seconds=60) == 2
        clock.advance(30)
        assert await store.increment("api:anon", ttl_seconds=60) == 3

    async def test_increment_restarts_after_expiry(self, store, clock):
        await store.increment("api:anon", ttl_seconds=60)
        await store.increment("api:anon", ttl_seconds=60)
        clock.advance(61)

        assert await store.increment("api:anon", ttl_seconds=60) == 1

    async def test_purge_expired(self, store, clock):
        await store.set("a", "1", ttl_seconds=10)
        await store.set("b", "2", ttl_seconds=10)
        await store.set("c", "3", ttl_seconds=100)
        clock.advance(50)

        assert await store.purge_expired() == 2
        assert len(store) == 1
        assert (await store.get("c")).value == "3"


class TestRedisTokenStore:
    @pytest.fixture
    def redis_client(self):
        client = AsyncMock()
        client.get.return_value = None
        return client

    @pytest.fixture
    def redis_store(self, redis_client, clock):
        return RedisTokenStore(redis_client, prefix="connector_storefront:csrf", clock=clock)

    async def test_set_uses_prefixed_key_and_px(self, redis_store, redis_client):
        record = await redis_store.set("user:alice", "token-1", ttl_seconds=1.5)

        redis_client.set.assert_awaited_once_with("connector_storefront:csrf:user:alice", "token-1", px=1500)
        assert record.expires_at == 1001.5

    async def test_get_reads_remaining_ttl(self, redis_store, redis_client):
        redis_client.get.return_value = "token-1"
        redis_client.pttl.return_value = 2500

        record = await redis_store.get("user:alice")

        assert record == TokenRecord(value="token-1", expires_at=1002.5)

    async def test_get_missing(self, redis_store):
        assert await redis_store.get("user:alice") is None

    async def test_get_expired_between_calls(self, redis_store, redis_client):
        redis_client.get.return_value = "token-1"
        redis_client.pttl.return_value = -2

        assert await redis_store.get("user:alice") is None

    async def test_increment_sets_expiry_on_first_hit_only(self, redis_store, redis_client):
        redis_client.incr.side_effect = [1, 2]

        assert await redis_store.increment("api:anon", ttl_seconds=60) == 1
        assert await redis_store.increment("api:anon", ttl_seconds=60) == 2

        redis_client.pexpire.assert_awaited_once_with("connector_storefront:csrf:api:anon", 60000)

    async def test_delete_and_close(self, redis_store, redis_client):
        await redis_store.delete("user:alice")
        await redis_store.close()

        redis_client.delete.assert_awaited_once_with("connector_storefront:csrf:user:alice")
        redis_client.aclose.assert_awaited_once()

    async def test_purge_is_a_no_op(self, redis_store):
        assert await redis_store.purge_expired() == 0


class TestCreateTokenStore:
    def test_memory_by_default(self):
        assert isinstance(create_token_store(Settings(), "csrf"), MemoryTokenStore)

    def test_redis_without_url_falls_back_to_memory(self):
        settings = Settings(token_store_backend="redis", redis_url=None)
        assert isinstance(create_token_store(settings, "csrf"), MemoryTokenStore)

    def test_redis_backend(self):
        settings = Settings(token_store_backend="redis", redis_url="redis://localhost:6379/0")

        with patch("app.services.security.token_store.redis.Redis.from_url") as from_url:
            store = create_token_store(settings, "rate_limit")

        from_url.assert_called_once_with("redis://localhost:6379/0", decode_responses=True)
        assert isinstance(store, RedisTokenStore)
        assert store.prefix == "connector_storefront:rate_limit"
