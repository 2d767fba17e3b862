# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
The AI request queue.

AIRequestQueue ties the pieces together: a request is admitted by the
per-owner rate limiter, waits in the priority scheduler, and once dispatched
is answered from the response cache or produced upstream through the retry
policy and the client facade. Aggregate statistics are kept in a QueueStats
owned by the queue.

Usage:
    async with create_queue() as queue:
        response = await queue.add_request(
            AIRequest(prompt="Hello", owner_id="user-1", priority="high")
        )
"""

import asyncio
import logging
import os
import time
from collections.abc import Iterable
from typing import Any

from typing_extensions import Self

from .cache import ResponseCache
from .config import QueueConfig, default_provider_settings, validate_provider_settings
from .exceptions import (
    ConfigurationError,
    DuplicateRequestError,
    ProviderError,
    QueueClearedError,
    QueueShutdownError,
    RateLimitExceeded,
)
from .observability.metrics import QueueMetrics, get_queue_metrics
from .providers.base import AIClientFacade, ProviderClient
from .providers.facade import AIClients
from .rate_limiter import RateLimiter
from .retry import FailedAttempt, RetryPolicy
from .scheduler.priority import PriorityScheduler
from .scheduler.stats import QueueStats
from .stores.base import BaseStore
from .stores.memory import MemoryStore
from .types.request import AIRequest
from .types.response import AIResponse
from .types.status import QueueStatus, RateLimitStatus

logger = logging.getLogger(__name__)


class AIRequestQueue:
    """
    Admission control, priority scheduling, caching and retries for AI requests.

    Collaborators are injected; use ``create_queue()`` to build a queue from
    configuration.

    Args:
        rate_limiter: Per-owner admission control
        cache: Response cache consulted after dispatch
        clients: Upstream facade producing fresh responses
        config: Queue configuration (defaults to QueueConfig())
        scheduler: Dispatcher (defaults to one built from ``config``)
        metrics: Prometheus instruments; defaults to the process-wide
            instance when ``config.metrics_enabled`` is set
        retry_policy: Retry policy (defaults to one built from ``config``)
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        cache: ResponseCache,
        clients: AIClientFacade,
        config: QueueConfig | None = None,
        scheduler: PriorityScheduler | None = None,
        metrics: QueueMetrics | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self.config = config or QueueConfig()
        self.rate_limiter = rate_limiter
        self.cache = cache
        self.clients = clients
        self.scheduler = scheduler or PriorityScheduler(
            concurrency=self.config.concurrent_requests,
            interval_cap=self.config.requests_per_minute,
            interval=self.config.dispatch_interval,
        )
        if metrics is None and self.config.metrics_enabled:
            metrics = get_queue_metrics()
        self.metrics = metrics
        self.retry_policy = retry_policy or RetryPolicy(
            retries=self.config.retry_attempts,
            min_delay=self.config.retry_delay,
            max_delay=self.config.retry_max_delay,
            attempt_timeout=self.config.attempt_timeout,
            on_failed_attempt=self._on_failed_attempt,
        )

        self.stats = QueueStats()
        self._outstanding: set[str] = set()
        self._admitting = 0
        self._admissions_settled = asyncio.Event()
        self._admissions_settled.set()
        self._shutting_down = False
        self._closed = False

        logger.info(
            f"AI request queue ready: concurrency={self.config.concurrent_requests}, "
            f"{self.config.requests_per_minute}/min, {self.config.requests_per_hour}/hour"
        )

    # === Public API ===

    async def add_request(self, request: AIRequest) -> AIResponse:
        """
        Admit, schedule and process ``request``.

        Raises:
            RateLimitExceeded: The owner exhausted a rate limit window
            ProviderError: Upstream failure after retries
            DuplicateRequestError: A request with the same id is outstanding
            QueueClearedError: The request was dropped by clear_queue() while waiting
            QueueShutdownError: The queue is shutting down
        """
        if self._shutting_down:
            raise QueueShutdownError("Queue is shutting down")
        if request.id in self._outstanding:
            raise DuplicateRequestError(request.id)

        self._outstanding.add(request.id)
        try:
            await self._admit(request)
            return await self._schedule(request)
        finally:
            self._outstanding.discard(request.id)

    def get_queue_status(self) -> QueueStatus:
        return self.stats.snapshot()

    async def get_rate_limit_status(self, owner_id: str) -> RateLimitStatus:
        return await self.rate_limiter.status(owner_id)

    def clear_queue(self) -> int:
        """
        Drop every waiting request and reset statistics.

        Callers of dropped requests receive QueueClearedError. Requests that
        are already executing run to completion but no longer affect the
        reset statistics.

        Returns:
            Number of requests dropped
        """
        dropped = self.scheduler.clear()
        self.stats.reset()
        self._publish()
        logger.info(f"Queue cleared ({dropped} waiting requests dropped)")
        return dropped

    def start(self) -> None:
        """Start background provider health checks, if the facade has them."""
        start = getattr(self.clients, "start", None)
        if callable(start):
            start()

    async def shutdown(self) -> None:
        """
        Stop accepting requests, drain waiting and running work, then
        release the facade and the shared store.
        """
        if self._closed:
            return
        self._shutting_down = True
        logger.info(
            f"Shutting down AI request queue "
            f"({self.scheduler.size} waiting, {self.scheduler.active} running)"
        )

        # Requests past the shutdown check but still in admission reach the
        # scheduler before draining starts.
        await self._admissions_settled.wait()
        await self.scheduler.on_idle()

        close = getattr(self.clients, "close", None)
        if callable(close):
            await close()

        stores: dict[int, BaseStore] = {}
        for store in (self.rate_limiter.store, self.cache.store):
            stores[id(store)] = store
        for store in stores.values():
            await store.close()

        self._closed = True
        logger.info("AI request queue shut down")

    async def __aenter__(self) -> Self:
        self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.shutdown()

    # === Internals ===

    async def _admit(self, request: AIRequest) -> None:
        self._admitting += 1
        self._admissions_settled.clear()
        try:
            await self.rate_limiter.check_and_reserve(request.owner_id)
        except RateLimitExceeded as e:
            logger.info(
                f"Request {request.id} rejected: {e.window} limit reached for "
                f"{request.owner_id}, resets at {e.reset_time.isoformat()}"
            )
            if self.metrics is not None:
                self.metrics.record_rate_limited(e.window)
            raise
        finally:
            self._admitting -= 1
            if self._admitting == 0:
                self._admissions_settled.set()

    async def _schedule(self, request: AIRequest) -> AIResponse:
        generation = self.stats.admit()
        self._publish()
        if self.metrics is not None:
            self.metrics.record_admitted(request.priority.value)

        started = time.monotonic()
        dispatched = False

        async def job() -> AIResponse:
            nonlocal dispatched
            dispatched = True
            self.stats.dispatch(generation)
            self._publish()
            logger.debug(f"Dispatched request {request.id} ({request.priority.value})")

            try:
                response = await self._process(request)
            except asyncio.CancelledError:
                self.stats.fail(generation)
                raise
            except Exception as e:
                self.stats.fail(generation)
                if self.metrics is not None:
                    self.metrics.record_failed(
                        e.code if isinstance(e, ProviderError) else "UNKNOWN_ERROR"
                    )
                logger.error(f"Request {request.id} failed: {type(e).__name__}: {e}")
                raise
            else:
                self.stats.complete(generation)
                if self.metrics is not None:
                    self.metrics.record_completed(response.cached)
                return response
            finally:
                self._publish()

        try:
            return await self.scheduler.submit(job, request.priority)
        except (asyncio.CancelledError, QueueClearedError):
            if not dispatched:
                self.stats.abandon(generation)
                self._publish()
            raise
        finally:
            if self.metrics is not None:
                self.metrics.observe_request(time.monotonic() - started)

    async def _process(self, request: AIRequest) -> AIResponse:
        fp = self.cache.fingerprint(request)

        cached = await self.cache.get(fp)
        if cached is not None:
            if self.metrics is not None:
                self.metrics.record_cache(hit=True)
            logger.debug(f"Request {request.id} served from cache")
            return cached.as_cached(request_id=request.id)

        if self.metrics is not None:
            self.metrics.record_cache(hit=False)

        response = await self.retry_policy.run(
            lambda: self.clients.generate_completion(request),
            request_id=request.id,
        )
        await self.cache.put(fp, response)
        return response

    def _on_failed_attempt(self, attempt: FailedAttempt) -> None:
        if (
            self.metrics is not None
            and attempt.retries_left > 0
            and self.retry_policy.should_retry(attempt.error)
        ):
            self.metrics.record_retry()

    def _publish(self) -> None:
        if self.metrics is not None:
            self.metrics.set_depth(self.stats.pending, self.stats.processing)


def create_queue(
    config: QueueConfig | None = None,
    providers: Iterable[ProviderClient] | AIClientFacade | None = None,
    store: BaseStore | None = None,
    redis_url: str | None = None,
    metrics: QueueMetrics | None = None,
) -> AIRequestQueue:
    """
    Build a queue with its store, rate limiter, cache and client facade.

    Args:
        config: Queue configuration; read from the environment when omitted
        providers: Provider clients or a ready facade; when omitted, OpenAI
            and Anthropic clients are built from environment settings
        store: Shared store for counters and cache; when omitted a RedisStore
            is used if ``redis_url`` or REDIS_URL is set, else a MemoryStore
        redis_url: Redis connection URL for the default store
        metrics: Prometheus instruments (see AIRequestQueue)

    Raises:
        ConfigurationError: Provider settings from the environment are invalid
    """
    config = config or QueueConfig.from_env()

    if store is None:
        url = redis_url or os.environ.get("REDIS_URL")
        if url:
            from .stores.redis import RedisStore

            store = RedisStore(redis_url=url, default_ttl=config.cache_ttl)
        else:
            store = MemoryStore(default_ttl=config.cache_ttl)

    if metrics is None and config.metrics_enabled:
        metrics = get_queue_metrics()

    clients: AIClientFacade
    if providers is None:
        settings = default_provider_settings()
        errors = validate_provider_settings(settings)
        if errors:
            raise ConfigurationError("Invalid AI provider configuration", errors)
        clients = AIClients.from_settings(
            settings, fallback_enabled=config.fallback_enabled, metrics=metrics
        )
    elif isinstance(providers, AIClientFacade):
        clients = providers
    else:
        clients = AIClients(
            providers, fallback_enabled=config.fallback_enabled, metrics=metrics
        )

    rate_limiter = RateLimiter(
        store,
        requests_per_minute=config.requests_per_minute,
        requests_per_hour=config.requests_per_hour,
        fail_open=config.fail_open,
    )
    cache = ResponseCache(store, default_ttl=config.cache_ttl)

    return AIRequestQueue(
        rate_limiter=rate_limiter,
        cache=cache,
        clients=clients,
        config=config,
        metrics=metrics,
    )


__all__ = ["AIRequestQueue", "create_queue"]
