# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Key/value stores for rate limit counters and cached responses.

Available stores:
- BaseStore: Abstract base class defining the store interface
- MemoryStore: In-memory store for single-process deployments
- RedisStore: Redis-based store for multi-process deployments (requires redis extra)

Note: RedisStore is lazily imported to avoid requiring the redis package
when only using MemoryStore.
"""

from typing import TYPE_CHECKING, cast

from ai_request_queue.stores.base import BaseStore, HealthCheckResult
from ai_request_queue.stores.memory import MemoryStore

if TYPE_CHECKING:
    from ai_request_queue.stores.redis import RedisStore

__all__ = [
    "BaseStore",
    "HealthCheckResult",
    "MemoryStore",
    "RedisStore",
]


def __getattr__(name: str) -> type:
    """Lazy import for the optional redis store."""
    if name == "RedisStore":
        try:
            from ai_request_queue.stores import redis as redis_module

            return cast(type, redis_module.RedisStore)
        except ImportError as e:  # pragma: no cover
            raise ImportError(  # pragma: no cover
                "'RedisStore' requires the 'redis' extra. "
                "Install with: pip install ai-request-queue[redis]"
            ) from e
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
