"""
Integration test fixtures.

Redis-backed tests run against fakeredis so they need no server. They are
skipped when fakeredis (and therefore redis) is not installed.

Example:
    @pytest.mark.asyncio
    async def test_shared_counters(redis_server, redis_store_factory):
        a = redis_store_factory(namespace="app")
        b = redis_store_factory(namespace="app")
        await a.set("k", 1)
        assert await b.get("k") == 1
"""

from __future__ import annotations

import pytest


@pytest.fixture
def redis_server():
    """A private in-process Redis server; clients built on it share data."""
    fakeredis = pytest.importorskip("fakeredis")
    return fakeredis.FakeServer()


@pytest.fixture
def redis_store_factory(redis_server):
    """Build RedisStore instances that talk to ``redis_server``."""
    from fakeredis import aioredis

    from ai_request_queue.stores.redis import RedisStore

    def factory(namespace: str = "it", default_ttl: int = 3600) -> RedisStore:
        client = aioredis.FakeRedis(server=redis_server, decode_responses=True)
        return RedisStore(redis_client=client, namespace=namespace, default_ttl=default_ttl)

    return factory
