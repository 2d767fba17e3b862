# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Prometheus metrics for the AI request queue.

Usage:
    metrics = get_queue_metrics()
    metrics.record_admitted("normal")
    metrics.observe_request(1.25)

    # Expose on http://127.0.0.1:9090/metrics
    start_http_server(9090)

Tests should bind a private registry instead of the process-wide one:

    metrics = QueueMetrics(registry=CollectorRegistry())
"""

import logging
import threading
from typing import Any

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram
from prometheus_client import start_http_server as _start_http_server

from .constants import (
    CACHE_HITS_TOTAL,
    CACHE_MISSES_TOTAL,
    LATENCY_BUCKETS,
    PROVIDER_CALL_DURATION_SECONDS,
    REQUEST_DURATION_SECONDS,
    REQUESTS_ADMITTED_TOTAL,
    REQUESTS_COMPLETED_TOTAL,
    REQUESTS_FAILED_TOTAL,
    REQUESTS_PENDING,
    REQUESTS_PROCESSING,
    REQUESTS_RATE_LIMITED_TOTAL,
    RETRIES_TOTAL,
)

logger = logging.getLogger(__name__)


def _name(full: str) -> str:
    # prometheus_client appends _total to counters itself
    return full[: -len("_total")] if full.endswith("_total") else full


class QueueMetrics:
    """
    Prometheus instruments for one queue deployment.

    Every instrument is registered on ``registry`` when the object is
    created, so a registry can hold only one QueueMetrics. Use
    ``get_queue_metrics()`` for the process-wide instance.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else REGISTRY

        self.admitted = Counter(
            _name(REQUESTS_ADMITTED_TOTAL),
            "Requests admitted to the scheduler",
            ["priority"],
            registry=self.registry,
        )
        self.rate_limited = Counter(
            _name(REQUESTS_RATE_LIMITED_TOTAL),
            "Requests rejected by the per-owner rate limiter",
            ["window"],
            registry=self.registry,
        )
        self.completed = Counter(
            _name(REQUESTS_COMPLETED_TOTAL),
            "Requests that produced a response",
            ["cached"],
            registry=self.registry,
        )
        self.failed = Counter(
            _name(REQUESTS_FAILED_TOTAL),
            "Requests that failed after dispatch",
            ["reason"],
            registry=self.registry,
        )
        self.retries = Counter(
            _name(RETRIES_TOTAL),
            "Upstream attempts that were retried",
            registry=self.registry,
        )
        self.cache_hits = Counter(
            _name(CACHE_HITS_TOTAL),
            "Requests answered from the response cache",
            registry=self.registry,
        )
        self.cache_misses = Counter(
            _name(CACHE_MISSES_TOTAL),
            "Requests that went upstream",
            registry=self.registry,
        )
        self.pending = Gauge(
            REQUESTS_PENDING,
            "Requests waiting for dispatch",
            registry=self.registry,
        )
        self.processing = Gauge(
            REQUESTS_PROCESSING,
            "Requests currently executing",
            registry=self.registry,
        )
        self.request_duration = Histogram(
            REQUEST_DURATION_SECONDS,
            "Time from admission to terminal outcome",
            buckets=LATENCY_BUCKETS,
            registry=self.registry,
        )
        self.provider_call_duration = Histogram(
            PROVIDER_CALL_DURATION_SECONDS,
            "Duration of a single upstream provider call",
            ["provider", "outcome"],
            buckets=LATENCY_BUCKETS,
            registry=self.registry,
        )

    def record_admitted(self, priority: str) -> None:
        self.admitted.labels(priority=priority).inc()

    def record_rate_limited(self, window: str) -> None:
        self.rate_limited.labels(window=window).inc()

    def record_completed(self, cached: bool) -> None:
        self.completed.labels(cached="true" if cached else "false").inc()

    def record_failed(self, reason: str) -> None:
        self.failed.labels(reason=reason).inc()

    def record_retry(self) -> None:
        self.retries.inc()

    def record_cache(self, hit: bool) -> None:
        if hit:
            self.cache_hits.inc()
        else:
            self.cache_misses.inc()

    def set_depth(self, pending: int, processing: int) -> None:
        self.pending.set(pending)
        self.processing.set(processing)

    def observe_request(self, seconds: float) -> None:
        self.request_duration.observe(seconds)

    def observe_provider_call(self, provider: str, seconds: float, ok: bool) -> None:
        self.provider_call_duration.labels(
            provider=provider, outcome="success" if ok else "error"
        ).observe(seconds)

    def sample(self, name: str, labels: dict[str, str] | None = None) -> float | None:
        """Current value of a sample on this registry (counters use the ``_total`` name)."""
        return self.registry.get_sample_value(name, labels or {})


# =============================================================================
# Singleton Pattern
# =============================================================================

_global_metrics: QueueMetrics | None = None
_metrics_lock = threading.Lock()


def get_queue_metrics() -> QueueMetrics:
    """
    Get or create the process-wide QueueMetrics on the default registry.

    Thread-safe singleton initialization.
    """
    global _global_metrics

    if _global_metrics is None:
        with _metrics_lock:
            if _global_metrics is None:
                _global_metrics = QueueMetrics()

    return _global_metrics


def start_http_server(
    port: int = 9090,
    host: str = "127.0.0.1",
    registry: CollectorRegistry | None = None,
) -> Any:
    """
    Start the Prometheus HTTP server for metrics scraping.

    Binds to localhost by default. Pass host="0.0.0.0" for access from
    outside a container and secure the port at the network level.
    """
    result = _start_http_server(port, addr=host, registry=registry or REGISTRY)
    logger.info(f"Prometheus metrics server started on {host}:{port}")
    return result


__all__ = ["QueueMetrics", "get_queue_metrics", "start_http_server"]
