# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""AI Request Queue - admission control and scheduling for AI completions.

This library sits between an application and its AI providers. It enforces
per-user rate limits, serves repeated requests from a response cache, bounds
concurrency against upstream limits, and retries transient failures with
backoff, while exposing live queue and rate-limit telemetry.

Key Features:
    - Per-owner minute and hour rate limits over a shared store
    - Priority scheduling (high, normal, low) with FIFO among equals
    - Content-addressed response cache with TTL
    - Exponential-backoff retries driven by typed, retryable errors
    - Multi-provider facade with health tracking and fallback
    - In-memory or Redis store, Prometheus metrics

Quick Start:
    >>> from ai_request_queue import AIRequest, create_queue
    >>>
    >>> async with create_queue() as queue:
    ...     response = await queue.add_request(
    ...         AIRequest(prompt="Summarize my experience", owner_id="user-1")
    ...     )
    ...     print(response.content, response.cached)

Main Exports:
    - AIRequestQueue, create_queue: The queue and its factory
    - AIRequest, AIResponse, Priority, RequestKind: Request/response types
    - QueueConfig, ProviderSettings: Configuration
    - MemoryStore, RedisStore: Stores for counters and cached responses
    - AIClients, ProviderClient: Upstream provider layer

Note: RedisStore requires the 'redis' extra, OpenAIProvider and
AnthropicProvider the 'providers' extra. Install with:
    pip install ai-request-queue[full]

Version: 1.0.0
"""

__version__ = "1.0.0"

import importlib
from typing import TYPE_CHECKING, cast

from .cache import ResponseCache, fingerprint
from .config import (
    ProviderSettings,
    QueueConfig,
    default_provider_settings,
    validate_provider_settings,
)
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    DuplicateRequestError,
    InvalidRequestError,
    ProviderError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    QueueClearedError,
    QueueError,
    QueueShutdownError,
    QuotaExceededError,
    RateLimitExceeded,
    StoreConnectionError,
    StoreOperationError,
)
from .observability import QueueMetrics, get_queue_metrics
from .providers import (
    AIClientFacade,
    AIClients,
    Completion,
    ProviderClient,
    classify_provider_error,
)
from .queue import AIRequestQueue, create_queue
from .rate_limiter import RateLimiter
from .retry import FailedAttempt, RetryPolicy
from .scheduler import PriorityScheduler, QueueStats
from .stores import BaseStore, HealthCheckResult, MemoryStore
from .types import (
    AIRequest,
    AIResponse,
    HealthState,
    Priority,
    ProviderHealth,
    QueueStatus,
    RateLimitStatus,
    RequestKind,
    TokenUsage,
)

# Lazy imports for optional extras
if TYPE_CHECKING:
    from .providers import AnthropicProvider, OpenAIProvider
    from .stores import RedisStore

__all__ = [
    "AIClientFacade",
    "AIClients",
    "AIRequest",
    "AIRequestQueue",
    "AIResponse",
    "AnthropicProvider",
    "AuthenticationError",
    "BaseStore",
    "Completion",
    "ConfigurationError",
    "DuplicateRequestError",
    "FailedAttempt",
    "HealthCheckResult",
    "HealthState",
    "InvalidRequestError",
    "MemoryStore",
    "OpenAIProvider",
    "Priority",
    "PriorityScheduler",
    "ProviderClient",
    "ProviderError",
    "ProviderHealth",
    "ProviderRateLimitError",
    "ProviderSettings",
    "ProviderTimeoutError",
    "ProviderUnavailableError",
    "QueueClearedError",
    "QueueConfig",
    "QueueError",
    "QueueMetrics",
    "QueueShutdownError",
    "QueueStats",
    "QueueStatus",
    "QuotaExceededError",
    "RateLimitExceeded",
    "RateLimitStatus",
    "RateLimiter",
    "RedisStore",
    "RequestKind",
    "ResponseCache",
    "RetryPolicy",
    "StoreConnectionError",
    "StoreOperationError",
    "TokenUsage",
    "__version__",
    "classify_provider_error",
    "create_queue",
    "default_provider_settings",
    "fingerprint",
    "get_queue_metrics",
    "validate_provider_settings",
]

_LAZY_EXPORTS = {
    "RedisStore": "ai_request_queue.stores",
    "OpenAIProvider": "ai_request_queue.providers",
    "AnthropicProvider": "ai_request_queue.providers",
}


def __getattr__(name: str) -> type:
    """Lazy import for components that need optional extras."""
    if name in _LAZY_EXPORTS:
        module = importlib.import_module(_LAZY_EXPORTS[name])
        return cast(type, getattr(module, name))
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
