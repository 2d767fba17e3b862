# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Shared fixtures for the AI request queue test suite."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest
from prometheus_client import CollectorRegistry

from ai_request_queue.config import QueueConfig
from ai_request_queue.observability.metrics import QueueMetrics
from ai_request_queue.providers.base import Completion, ProviderClient
from ai_request_queue.stores.memory import MemoryStore
from ai_request_queue.types.request import AIRequest
from ai_request_queue.types.response import TokenUsage


class ScriptedProvider(ProviderClient):
    """
    Provider whose outcomes are scripted per call.

    Each entry of ``script`` is either a string (returned as content) or an
    exception instance (raised). When the script runs out, ``default`` is
    used. ``gate`` lets a test hold calls until it releases them.
    """

    def __init__(
        self,
        name: str = "mock",
        script: list[Any] | None = None,
        default: Any = "ok",
        gate: asyncio.Event | None = None,
        healthy: bool = True,
    ) -> None:
        self._name = name
        self.script = list(script or [])
        self.default = default
        self.gate = gate
        self.healthy = healthy
        self.calls: list[AIRequest] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def model(self) -> str:
        return f"{self._name}-model"

    async def complete(self, request: AIRequest) -> Completion:
        self.calls.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
            outcome = self.script.pop(0) if self.script else self.default
            if isinstance(outcome, BaseException):
                raise outcome
            return Completion(
                content=outcome,
                model=self.model,
                usage=TokenUsage(prompt_tokens=3, completion_tokens=2),
            )
        finally:
            self.in_flight -= 1

    async def health_check(self) -> bool:
        return self.healthy

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def provider_factory() -> Callable[..., ScriptedProvider]:
    return ScriptedProvider


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore(namespace="test")


@pytest.fixture
def metrics() -> QueueMetrics:
    return QueueMetrics(registry=CollectorRegistry())


@pytest.fixture
def fast_config() -> QueueConfig:
    """Config with zero retry delays and metrics off the default registry."""
    return QueueConfig(
        concurrent_requests=2,
        retry_attempts=2,
        retry_delay=0.0,
        attempt_timeout=None,
        metrics_enabled=False,
    )
