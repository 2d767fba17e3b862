# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
RedisStore for the AI request queue

This module provides the RedisStore used when several queue processes must
share rate limit counters and cached responses.

Key Features:
- JSON-encoded values with per-key expiry (SET ... EX)
- Namespaced keys so several deployments can share one Redis
- Lazy connection with ping verification and reconnect on failure
- Short back-off after a failed connection so callers can skip the store
  cheaply while Redis is down
"""

import asyncio
import json
import logging
import os
import time
from typing import Any

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from ..exceptions import StoreConnectionError, StoreOperationError
from .base import BaseStore, HealthCheckResult

logger = logging.getLogger(__name__)


class RedisStore(BaseStore):
    """
    A Redis-backed key/value store.

    Connection failures surface as StoreConnectionError, every other Redis
    failure (including undecodable payloads) as StoreOperationError.
    """

    def __init__(
        self,
        redis_url: str | None = None,
        redis_client: Any | None = None,
        namespace: str = "ai_queue",
        default_ttl: int = 3600,
        max_connections: int = 10,
        connect_timeout: float = 5.0,
        reconnect_backoff: float = 5.0,
    ) -> None:
        """
        Initialize the Redis store.

        Args:
            redis_url: Redis connection URL. If not provided, falls back to REDIS_URL
                environment variable, then to "redis://localhost:6379".
            redis_client: Optional pre-configured Redis client (must decode responses)
            namespace: Namespace prefix for keys
            default_ttl: TTL in seconds applied when set() gets no ttl
            max_connections: Maximum connections in the pool
            connect_timeout: Seconds to wait for the initial ping
            reconnect_backoff: Seconds to report the store unavailable after a
                failed connection attempt
        """
        super().__init__(namespace)
        self.redis_url = (
            redis_url or os.environ.get("REDIS_URL") or "redis://localhost:6379"
        )
        self.default_ttl = default_ttl
        self.max_connections = max_connections
        self.connect_timeout = connect_timeout
        self.reconnect_backoff = reconnect_backoff

        self._redis: Any | None = redis_client
        self._owned_redis = redis_client is None
        self._pool: ConnectionPool | None = None
        self._connected = False
        self._connection_lock = asyncio.Lock()
        self._unavailable_until = 0.0
        self._closed = False

    def is_available(self) -> bool:
        if self._closed:
            return False
        return time.monotonic() >= self._unavailable_until

    def _mark_unavailable(self, error: Exception) -> None:
        self._connected = False
        self._unavailable_until = time.monotonic() + self.reconnect_backoff
        logger.warning(
            f"Redis unavailable at {self.redis_url}: {error}; "
            f"retrying in {self.reconnect_backoff:.0f}s"
        )

    async def _ensure_connected(self) -> Any:
        """Return a connected client, connecting or reconnecting as needed."""
        if self._closed:
            raise StoreConnectionError("Redis store is closed")

        if self._redis is not None and self._connected:
            return self._redis

        async with self._connection_lock:
            if self._redis is not None and self._connected:
                return self._redis

            if self._redis is None:
                self._pool = ConnectionPool.from_url(
                    self.redis_url,
                    max_connections=self.max_connections,
                    decode_responses=True,
                )
                self._redis = Redis(connection_pool=self._pool)

            try:
                await asyncio.wait_for(self._redis.ping(), timeout=self.connect_timeout)
            except (ConnectionError, TimeoutError, asyncio.TimeoutError, OSError) as e:
                self._mark_unavailable(e)
                raise StoreConnectionError(f"Cannot connect to Redis: {e}") from e
            except RedisError as e:
                logger.error(f"Redis error while connecting to {self.redis_url}: {e}")
                raise StoreOperationError(f"Redis ping failed: {e}") from e

            self._connected = True
            self._unavailable_until = 0.0
            logger.info(f"Connected to Redis at {self.redis_url}")
            return self._redis

    async def _call(self, operation: str, key: str, coro_factory: Any) -> Any:
        client = await self._ensure_connected()
        try:
            return await coro_factory(client)
        except (ConnectionError, TimeoutError) as e:
            self._mark_unavailable(e)
            raise StoreConnectionError(f"Redis {operation} failed for {key}: {e}") from e
        except RedisError as e:
            logger.error(f"Redis error during {operation} for {key}: {e}")
            raise StoreOperationError(f"Redis {operation} failed for {key}: {e}") from e

    async def get(self, key: str) -> Any | None:
        full_key = self.key(key)
        raw = await self._call("get", full_key, lambda r: r.get(full_key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            raise StoreOperationError(f"Undecodable value stored at {full_key}") from e

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        full_key = self.key(key)
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StoreOperationError(f"Value for {full_key} is not JSON-serializable") from e

        effective_ttl = self.default_ttl if ttl is None else ttl
        expire = effective_ttl if effective_ttl > 0 else None
        await self._call("set", full_key, lambda r: r.set(full_key, payload, ex=expire))

    async def delete(self, key: str) -> bool:
        full_key = self.key(key)
        removed = await self._call("delete", full_key, lambda r: r.delete(full_key))
        return bool(removed)

    async def ping(self) -> bool:
        try:
            await self._ensure_connected()
            return True
        except (StoreConnectionError, StoreOperationError):
            return False

    async def clear(self) -> None:
        """Delete every key under the namespace using SCAN (never KEYS)."""
        pattern = f"{self.namespace}:*"
        client = await self._ensure_connected()
        try:
            cursor = 0
            while True:
                cursor, keys = await client.scan(cursor, match=pattern, count=100)
                if keys:
                    await client.delete(*keys)
                if cursor == 0:
                    break
        except (ConnectionError, TimeoutError) as e:
            self._mark_unavailable(e)
            raise StoreConnectionError(f"Redis clear failed: {e}") from e
        except RedisError as e:
            logger.error(f"Redis error during clear: {e}")
            raise StoreOperationError(f"Redis clear failed: {e}") from e

    async def health_check(self) -> HealthCheckResult:
        try:
            client = await self._ensure_connected()
            info = await client.info()
            return HealthCheckResult(
                healthy=True,
                store_type="redis",
                namespace=self.namespace,
                metadata={
                    "redis_url": self.redis_url,
                    "connected": self._connected,
                    "redis_version": info.get("redis_version"),
                    "used_memory": info.get("used_memory_human"),
                    "connected_clients": info.get("connected_clients"),
                },
            )
        except (StoreConnectionError, StoreOperationError, RedisError) as e:
            return HealthCheckResult(
                healthy=False,
                store_type="redis",
                namespace=self.namespace,
                error=str(e),
            )

    async def close(self) -> None:
        """Close the connection pool if this store created it."""
        self._closed = True
        if self._redis is not None and self._owned_redis:
            try:
                await self._redis.aclose()
                if self._pool is not None:
                    await self._pool.disconnect()
            except RedisError as e:
                logger.error(f"Error closing Redis connection: {e}")
            finally:
                self._redis = None
                self._pool = None
        self._connected = False
        logger.debug(f"RedisStore '{self.namespace}' closed")


__all__ = ["RedisStore"]
