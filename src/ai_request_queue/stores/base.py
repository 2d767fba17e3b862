# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Base Store for the AI request queue

This module provides the BaseStore abstract class: the narrow key/value
interface through which the rate limiter counters and the response cache
reach shared state. An in-process store and a networked store are
interchangeable behind it.

Values are JSON-compatible (dicts, lists, strings, numbers, booleans, None).
"""

import abc
import logging
from dataclasses import dataclass
from typing import Any

from typing_extensions import Self

logger = logging.getLogger(__name__)


@dataclass
class HealthCheckResult:
    """
    Structured health check result for store monitoring.

    Attributes:
        healthy: Whether the store is operational
        store_type: Type of store (e.g., 'redis', 'memory')
        namespace: Store namespace
        error: Error message if unhealthy
        metadata: Additional store-specific information
    """

    healthy: bool
    store_type: str
    namespace: str
    error: str | None = None
    metadata: dict[str, Any] | None = None


class BaseStore(abc.ABC):
    """
    Abstract key/value store with per-key time-to-live.

    Implementations raise StoreConnectionError when the store cannot be
    reached and StoreOperationError when an operation fails for any other
    reason. Callers decide whether to absorb those errors.
    """

    def __init__(self, namespace: str = "ai_queue") -> None:
        self.namespace = namespace

    def key(self, key: str) -> str:
        """Apply the namespace prefix to a logical key."""
        return f"{self.namespace}:{key}"

    @abc.abstractmethod
    def is_available(self) -> bool:
        """
        Cheap, non-blocking availability signal.

        Returns False when the store is known to be unreachable, so callers
        can skip a round trip and apply their degraded behaviour directly.
        """
        pass

    @abc.abstractmethod
    async def get(self, key: str) -> Any | None:
        """
        Get the value stored under ``key``.

        Returns:
            The stored value, or None if missing or expired
        """
        pass

    @abc.abstractmethod
    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """
        Store ``value`` under ``key``.

        Args:
            key: Logical key (the namespace is applied by the store)
            value: JSON-compatible value
            ttl: Time-to-live in seconds; None uses the store default
        """
        pass

    @abc.abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete ``key``. Returns True if something was removed."""
        pass

    @abc.abstractmethod
    async def ping(self) -> bool:
        """Round-trip check. Returns True when the store answers."""
        pass

    @abc.abstractmethod
    async def clear(self) -> None:
        """Remove every key in this store's namespace."""
        pass

    @abc.abstractmethod
    async def health_check(self) -> HealthCheckResult:
        """Perform a health check and report the result."""
        pass

    async def close(self) -> None:  # noqa: B027
        """Release connections held by the store."""
        pass

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


__all__ = ["BaseStore", "HealthCheckResult"]
