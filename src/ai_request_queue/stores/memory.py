# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
MemoryStore for the AI request queue

This module provides an in-memory store implementation that doesn't require Redis.
Perfect for testing, development, and single-process deployments.
"""

import asyncio
import copy
import heapq
import logging
import time
from collections.abc import Callable
from typing import Any

from .base import BaseStore, HealthCheckResult

logger = logging.getLogger(__name__)


class MemoryStore(BaseStore):
    """
    An in-memory key/value store with TTL support.

    Key Features:
    - Pure in-memory dict-based storage
    - TTL (Time-To-Live) support for automatic expiration
    - Async-safe writes using asyncio.Lock
    - O(log n) cleanup of expired entries through an expiration heap
    - Values are deep-copied on the way in and out, so callers never share
      mutable state with the store (the same isolation a networked store gives)

    Note:
        This store is NOT suitable for multi-process deployments; every
        process sees its own counters and cache.
    """

    def __init__(
        self,
        namespace: str = "ai_queue",
        default_ttl: int = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the in-memory store.

        Args:
            namespace: Namespace for key isolation
            default_ttl: TTL in seconds applied when set() gets no ttl
            clock: Time source returning seconds; injectable for tests
        """
        super().__init__(namespace)
        self.default_ttl = default_ttl
        self._clock = clock

        # Format: Dict[key, Tuple[value, expiry_timestamp]]
        self._data: dict[str, tuple[Any, float | None]] = {}

        # Format: List[Tuple[expiry_time, key]]
        # May hold stale entries for keys that were rewritten; they are
        # validated against _data and skipped.
        self._expiration_heap: list[tuple[float, str]] = []

        self._lock = asyncio.Lock()
        self._closed = False

        logger.debug(f"Initialized MemoryStore with namespace '{namespace}'")

    def _is_expired(self, expiry: float | None) -> bool:
        if expiry is None:
            return False
        return self._clock() >= expiry

    def _cleanup_expired_from_heap(self) -> int:
        """
        Remove expired entries using the expiration heap.

        Returns:
            Number of entries actually removed.
        """
        now = self._clock()
        removed = 0

        while self._expiration_heap:
            expiry, key = self._expiration_heap[0]
            if expiry > now:
                break

            heapq.heappop(self._expiration_heap)

            entry = self._data.get(key)
            if entry is None:
                continue

            # Only delete if the entry wasn't rewritten with a new expiry
            if entry[1] == expiry:
                del self._data[key]
                removed += 1

        return removed

    def is_available(self) -> bool:
        return not self._closed

    async def get(self, key: str) -> Any | None:
        full_key = self.key(key)
        entry = self._data.get(full_key)
        if entry is None:
            return None

        value, expiry = entry
        if self._is_expired(expiry):
            async with self._lock:
                current = self._data.get(full_key)
                if current is not None and self._is_expired(current[1]):
                    del self._data[full_key]
            return None

        return copy.deepcopy(value)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        effective_ttl = self.default_ttl if ttl is None else ttl
        expiry = self._clock() + effective_ttl if effective_ttl > 0 else None
        full_key = self.key(key)

        async with self._lock:
            self._data[full_key] = (copy.deepcopy(value), expiry)
            if expiry is not None:
                heapq.heappush(self._expiration_heap, (expiry, full_key))
            self._cleanup_expired_from_heap()

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._data.pop(self.key(key), None) is not None

    async def ping(self) -> bool:
        return not self._closed

    async def clear(self) -> None:
        async with self._lock:
            self._data.clear()
            self._expiration_heap.clear()

    async def ttl(self, key: str) -> float | None:
        """Remaining lifetime of ``key`` in seconds, or None if missing/no expiry."""
        entry = self._data.get(self.key(key))
        if entry is None or entry[1] is None:
            return None
        remaining = entry[1] - self._clock()
        return remaining if remaining > 0 else None

    def __len__(self) -> int:
        return sum(1 for _, expiry in self._data.values() if not self._is_expired(expiry))

    async def health_check(self) -> HealthCheckResult:
        return HealthCheckResult(
            healthy=not self._closed,
            store_type="memory",
            namespace=self.namespace,
            metadata={
                "keys": len(self),
                "heap_size": len(self._expiration_heap),
            },
        )

    async def close(self) -> None:
        await self.clear()
        self._closed = True
        logger.debug(f"MemoryStore '{self.namespace}' closed")


__all__ = ["MemoryStore"]
