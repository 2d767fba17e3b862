# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Multi-provider AI client with health tracking and fallback.

AIClients implements the AIClientFacade protocol over any number of
ProviderClient instances. Each live call feeds a smoothed response time
and error rate per provider; the healthiest, fastest provider is tried
first and the others serve as fallbacks.
"""

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from ..config import ProviderSettings
from ..exceptions import ProviderError, ProviderUnavailableError
from ..types.request import AIRequest
from ..types.response import AIResponse
from ..types.status import HealthState, ProviderHealth
from .base import Completion, ProviderClient, classify_provider_error

if TYPE_CHECKING:
    from ..observability.metrics import QueueMetrics

logger = logging.getLogger(__name__)

DEFAULT_HEALTH_CHECK_INTERVAL = 300.0


class AIClients:
    """
    Routes completions to the best available provider.

    Selection order: a provider whose status is healthy beats one that is
    not; among equals the lower smoothed response time wins; remaining ties
    keep registration order.

    Args:
        providers: Provider clients; names must be unique
        fallback_enabled: Try the remaining providers when the first fails
        health_check_interval: Seconds between background probes
        ema_alpha: Weight of the newest sample in the moving averages
        degraded_threshold: Error rate at which a provider becomes degraded
        down_threshold: Error rate at which a provider is considered down
        metrics: Optional QueueMetrics receiving provider call latency
        clock: Monotonic time source in seconds
    """

    def __init__(
        self,
        providers: Iterable[ProviderClient],
        fallback_enabled: bool = True,
        health_check_interval: float = DEFAULT_HEALTH_CHECK_INTERVAL,
        ema_alpha: float = 0.2,
        degraded_threshold: float = 0.2,
        down_threshold: float = 0.5,
        metrics: "QueueMetrics | None" = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not 0 < ema_alpha <= 1:
            raise ValueError("ema_alpha must be in (0, 1]")
        if not 0 < degraded_threshold <= down_threshold <= 1:
            raise ValueError("thresholds must satisfy 0 < degraded <= down <= 1")
        if health_check_interval <= 0:
            raise ValueError("health_check_interval must be positive")

        self._providers: dict[str, ProviderClient] = {}
        for provider in providers:
            if provider.name in self._providers:
                raise ValueError(f"Duplicate provider name: {provider.name}")
            self._providers[provider.name] = provider

        self.fallback_enabled = fallback_enabled
        self.health_check_interval = health_check_interval
        self.ema_alpha = ema_alpha
        self.degraded_threshold = degraded_threshold
        self.down_threshold = down_threshold
        self.metrics = metrics
        self._clock = clock

        self._health: dict[str, ProviderHealth] = {
            name: ProviderHealth(provider=name) for name in self._providers
        }
        self._health_task: asyncio.Task[None] | None = None

        for name in self._providers:
            logger.info(f"{name} client initialized")

    @classmethod
    def from_settings(
        cls,
        settings: Iterable[ProviderSettings],
        fallback_enabled: bool = True,
        metrics: "QueueMetrics | None" = None,
    ) -> "AIClients":
        """
        Build clients for every enabled provider in ``settings``.

        Requires the ``providers`` extra for the OpenAI and Anthropic SDKs.
        Unknown provider names are skipped with a warning.
        """
        providers: list[ProviderClient] = []
        for s in settings:
            if not s.enabled:
                continue
            if s.name == "openai":
                from .openai import OpenAIProvider

                providers.append(OpenAIProvider(s))
            elif s.name == "anthropic":
                from .anthropic import AnthropicProvider

                providers.append(AnthropicProvider(s))
            else:
                logger.warning(f"No client available for provider '{s.name}', skipping")
        return cls(providers, fallback_enabled=fallback_enabled, metrics=metrics)

    # === AIClientFacade ===

    def get_available_providers(self) -> list[str]:
        return list(self._providers)

    def get_health_status(self) -> dict[str, ProviderHealth]:
        return {name: h.model_copy() for name, h in self._health.items()}

    def select_provider(self) -> str:
        """Name of the provider the next call goes to first."""
        ranked = self._ranked_providers()
        if not ranked:
            raise ProviderUnavailableError("No AI providers available")
        return ranked[0]

    def _ranked_providers(self) -> list[str]:
        order = {name: i for i, name in enumerate(self._providers)}
        return sorted(
            self._providers,
            key=lambda name: (
                self._health[name].status != HealthState.HEALTHY,
                self._health[name].response_time,
                order[name],
            ),
        )

    async def generate_completion(
        self, request: AIRequest, preferred_provider: str | None = None
    ) -> AIResponse:
        """
        Produce a fresh response for ``request``.

        Raises:
            ProviderUnavailableError: No provider is configured
            ProviderError: Every provider tried failed; the last error is raised
        """
        start = self._clock()
        candidates = self._ranked_providers()
        if preferred_provider in self._providers:
            candidates.remove(preferred_provider)
            candidates.insert(0, preferred_provider)
        if not self.fallback_enabled:
            candidates = candidates[:1]

        last_error: ProviderError | None = None
        for i, name in enumerate(candidates):
            if i > 0:
                logger.info(f"Falling back to {name} for request {request.id}")
            try:
                completion = await self._call(name, request)
            except ProviderError as e:
                last_error = e
                logger.warning(f"Provider {name} failed for request {request.id}: {e}")
                continue

            return AIResponse(
                request_id=request.id,
                content=completion.content,
                provider=name,
                model=completion.model,
                usage=completion.usage,
                processing_time=self._clock() - start,
            )

        if last_error is None:
            raise ProviderUnavailableError(
                "No AI providers available", request_id=request.id
            )
        raise last_error

    async def _call(self, name: str, request: AIRequest) -> Completion:
        provider = self._providers[name]
        started = self._clock()
        try:
            completion = await provider.complete(request)
        except Exception as e:
            elapsed = self._clock() - started
            self._record_call(name, elapsed, failed=True)
            error = classify_provider_error(e, provider=name, request_id=request.id)
            if error is e:
                raise
            raise error from e

        self._record_call(name, self._clock() - started, failed=False)
        return completion

    # === Health tracking ===

    def _derive_status(self, error_rate: float) -> HealthState:
        if error_rate >= self.down_threshold:
            return HealthState.DOWN
        if error_rate >= self.degraded_threshold:
            return HealthState.DEGRADED
        return HealthState.HEALTHY

    def _record_call(self, name: str, elapsed: float, failed: bool) -> None:
        current = self._health[name]
        alpha = self.ema_alpha
        if current.response_time == 0:
            response_time = elapsed
        else:
            response_time = alpha * elapsed + (1 - alpha) * current.response_time
        error_rate = alpha * (1.0 if failed else 0.0) + (1 - alpha) * current.error_rate

        self._health[name] = ProviderHealth(
            provider=name,
            status=self._derive_status(error_rate),
            response_time=response_time,
            error_rate=error_rate,
            last_check=datetime.now(timezone.utc),
        )

        if self.metrics is not None:
            self.metrics.observe_provider_call(name, elapsed, ok=not failed)

    async def _probe(self, name: str) -> None:
        provider = self._providers[name]
        started = self._clock()
        try:
            healthy = await provider.health_check()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Health check failed for {name}: {e}")
            healthy = False

        self._health[name] = ProviderHealth(
            provider=name,
            status=HealthState.HEALTHY if healthy else HealthState.DOWN,
            response_time=self._clock() - started,
            error_rate=0.0 if healthy else 1.0,
            last_check=datetime.now(timezone.utc),
        )

    async def check_health(self) -> dict[str, ProviderHealth]:
        """Probe every provider now and return the updated health snapshot."""
        await asyncio.gather(*(self._probe(name) for name in self._providers))
        return self.get_health_status()

    async def _health_loop(self) -> None:
        while True:
            await asyncio.sleep(self.health_check_interval)
            await self.check_health()

    def start(self) -> None:
        """Start periodic health probes. Must be called from a running loop."""
        if self._health_task is None or self._health_task.done():
            self._health_task = asyncio.create_task(self._health_loop())
            logger.debug(
                f"Provider health checks every {self.health_check_interval:.0f}s"
            )

    async def stop(self) -> None:
        if self._health_task is not None:
            self._health_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._health_task
            self._health_task = None

    async def close(self) -> None:
        """Stop health probes and release provider SDK clients."""
        await self.stop()
        for provider in self._providers.values():
            await provider.close()


__all__ = ["DEFAULT_HEALTH_CHECK_INTERVAL", "AIClients"]
