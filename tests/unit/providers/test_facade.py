# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Unit tests for the AIClients multi-provider facade.

Covers provider selection, fallback, health tracking and the background
health probe lifecycle.
"""

import asyncio

import pytest
from prometheus_client import CollectorRegistry

from ai_request_queue.exceptions import (
    AuthenticationError,
    ProviderUnavailableError,
)
from ai_request_queue.observability import QueueMetrics
from ai_request_queue.providers import AIClientFacade, AIClients
from ai_request_queue.types import AIRequest, HealthState


class StepClock:
    """Monotonic clock advanced by hand."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def request_():
    return AIRequest(prompt="Hello", owner_id="u1", id="r1")


class TestConstruction:
    def test_satisfies_facade_protocol(self, provider_factory):
        assert isinstance(AIClients([provider_factory()]), AIClientFacade)

    def test_duplicate_names_rejected(self, provider_factory):
        with pytest.raises(ValueError, match="Duplicate"):
            AIClients([provider_factory("a"), provider_factory("a")])

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"ema_alpha": 0},
            {"degraded_threshold": 0.6, "down_threshold": 0.5},
            {"health_check_interval": 0},
        ],
    )
    def test_invalid_arguments(self, provider_factory, kwargs):
        with pytest.raises(ValueError):
            AIClients([provider_factory()], **kwargs)

    def test_initial_health(self, provider_factory):
        clients = AIClients([provider_factory("a"), provider_factory("b")])

        assert clients.get_available_providers() == ["a", "b"]
        health = clients.get_health_status()
        assert set(health) == {"a", "b"}
        assert all(h.status is HealthState.HEALTHY for h in health.values())

    def test_health_status_is_a_snapshot(self, provider_factory):
        clients = AIClients([provider_factory("a")])
        snapshot = clients.get_health_status()
        snapshot["a"].error_rate = 0.9
        assert clients.get_health_status()["a"].error_rate == 0.0


class TestSelection:
    def test_registration_order_breaks_ties(self, provider_factory):
        clients = AIClients([provider_factory("a"), provider_factory("b")])
        assert clients.select_provider() == "a"

    def test_no_providers(self):
        with pytest.raises(ProviderUnavailableError):
            AIClients([]).select_provider()

    @pytest.mark.asyncio
    async def test_faster_provider_preferred(self, provider_factory, request_):
        clock = StepClock()
        slow, fast = provider_factory("slow"), provider_factory("fast")
        clients = AIClients([slow, fast], clock=clock)

        clients._record_call("slow", 2.0, failed=False)
        clients._record_call("fast", 0.5, failed=False)

        assert clients.select_provider() == "fast"

    @pytest.mark.asyncio
    async def test_healthy_beats_faster_unhealthy(self, provider_factory):
        clients = AIClients([provider_factory("a"), provider_factory("b")])
        clients._record_call("a", 0.1, failed=True)
        clients._record_call("a", 0.1, failed=True)
        clients._record_call("b", 5.0, failed=False)

        assert clients.get_health_status()["a"].status is not HealthState.HEALTHY
        assert clients.select_provider() == "b"


class TestGenerateCompletion:
    @pytest.mark.asyncio
    async def test_success(self, provider_factory, request_):
        clients = AIClients([provider_factory("a", default="Hi")])

        response = await clients.generate_completion(request_)

        assert response.request_id == "r1"
        assert response.content == "Hi"
        assert response.provider == "a"
        assert response.model == "a-model"
        assert response.cached is False
        assert response.usage.total_tokens == 5
        assert response.processing_time >= 0

    @pytest.mark.asyncio
    async def test_fallback_on_failure(self, provider_factory, request_):
        a = provider_factory("a", script=[ProviderUnavailableError("down")])
        b = provider_factory("b", default="from b")
        clients = AIClients([a, b])

        response = await clients.generate_completion(request_)

        assert response.provider == "b"
        assert len(a.calls) == 1
        assert clients.get_health_status()["a"].error_rate > 0

    @pytest.mark.asyncio
    async def test_fallback_disabled(self, provider_factory, request_):
        a = provider_factory("a", script=[ProviderUnavailableError("down")])
        b = provider_factory("b")
        clients = AIClients([a, b], fallback_enabled=False)

        with pytest.raises(ProviderUnavailableError):
            await clients.generate_completion(request_)
        assert b.calls == []

    @pytest.mark.asyncio
    async def test_all_fail_raises_last_error(self, provider_factory, request_):
        a = provider_factory("a", script=[ProviderUnavailableError("a down")])
        b = provider_factory("b", script=[AuthenticationError("b key")])
        clients = AIClients([a, b])

        with pytest.raises(AuthenticationError) as exc_info:
            await clients.generate_completion(request_)

        assert exc_info.value.provider == "b"
        assert exc_info.value.request_id == "r1"

    @pytest.mark.asyncio
    async def test_raw_exceptions_are_classified(self, provider_factory, request_):
        a = provider_factory("a", script=[ConnectionResetError("reset")])
        clients = AIClients([a], fallback_enabled=False)

        with pytest.raises(ProviderUnavailableError) as exc_info:
            await clients.generate_completion(request_)

        assert isinstance(exc_info.value.__cause__, ConnectionResetError)
        assert exc_info.value.provider == "a"

    @pytest.mark.asyncio
    async def test_preferred_provider_first(self, provider_factory, request_):
        a, b = provider_factory("a"), provider_factory("b")
        clients = AIClients([a, b])

        response = await clients.generate_completion(request_, preferred_provider="b")

        assert response.provider == "b"
        assert a.calls == []

    @pytest.mark.asyncio
    async def test_no_providers(self, request_):
        with pytest.raises(ProviderUnavailableError) as exc_info:
            await AIClients([]).generate_completion(request_)
        assert exc_info.value.request_id == "r1"

    @pytest.mark.asyncio
    async def test_reports_provider_calls_to_metrics(self, provider_factory, request_):
        metrics = QueueMetrics(registry=CollectorRegistry())
        clients = AIClients(
            [provider_factory("a", script=[RuntimeError("x")]), provider_factory("b")],
            metrics=metrics,
        )

        await clients.generate_completion(request_)

        assert metrics.sample(
            "ai_queue_provider_call_duration_seconds_count",
            {"provider": "a", "outcome": "error"},
        ) == 1
        assert metrics.sample(
            "ai_queue_provider_call_duration_seconds_count",
            {"provider": "b", "outcome": "success"},
        ) == 1


class TestHealthTracking:
    def test_first_sample_sets_response_time(self, provider_factory):
        clients = AIClients([provider_factory("a")])
        clients._record_call("a", 1.5, failed=False)
        assert clients.get_health_status()["a"].response_time == 1.5

    def test_moving_averages(self, provider_factory):
        clients = AIClients([provider_factory("a")], ema_alpha=0.5)
        clients._record_call("a", 1.0, failed=False)
        clients._record_call("a", 3.0, failed=True)

        health = clients.get_health_status()["a"]
        assert health.response_time == pytest.approx(2.0)
        assert health.error_rate == pytest.approx(0.5)

    def test_status_thresholds(self, provider_factory):
        clients = AIClients(
            [provider_factory("a")],
            ema_alpha=0.25,
            degraded_threshold=0.2,
            down_threshold=0.5,
        )
        clients._record_call("a", 0.1, failed=True)
        assert clients.get_health_status()["a"].status is HealthState.DEGRADED

        clients._record_call("a", 0.1, failed=True)
        clients._record_call("a", 0.1, failed=True)
        assert clients.get_health_status()["a"].status is HealthState.DOWN

        for _ in range(10):
            clients._record_call("a", 0.1, failed=False)
        assert clients.get_health_status()["a"].status is HealthState.HEALTHY

    @pytest.mark.asyncio
    async def test_check_health(self, provider_factory):
        up = provider_factory("up")
        down = provider_factory("down", healthy=False)
        clients = AIClients([up, down])

        health = await clients.check_health()

        assert health["up"].status is HealthState.HEALTHY
        assert health["down"].status is HealthState.DOWN
        assert health["down"].error_rate == 1.0

    @pytest.mark.asyncio
    async def test_check_health_survives_probe_exceptions(self, provider_factory):
        broken = provider_factory("broken")

        async def explode():
            raise RuntimeError("probe failed")

        broken.health_check = explode
        health = await AIClients([broken]).check_health()
        assert health["broken"].status is HealthState.DOWN


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_background_probes(self, provider_factory):
        down = provider_factory("down", healthy=False)
        clients = AIClients([down], health_check_interval=0.01)

        clients.start()
        await asyncio.sleep(0.05)
        await clients.stop()

        assert clients.get_health_status()["down"].status is HealthState.DOWN
        assert clients._health_task is None

    @pytest.mark.asyncio
    async def test_close_stops_and_closes_providers(self, provider_factory):
        a = provider_factory("a")
        clients = AIClients([a], health_check_interval=60)
        clients.start()

        await clients.close()

        assert a.closed is True
        assert clients._health_task is None
