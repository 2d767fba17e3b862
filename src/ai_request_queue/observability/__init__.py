# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Observability for the AI request queue.

Classes:
    QueueMetrics: Prometheus instruments for admission, outcomes, cache and latency.

Functions:
    get_queue_metrics: Get or create the process-wide QueueMetrics.
    start_http_server: Expose a registry for Prometheus scraping.
"""

from .constants import (
    CACHE_HITS_TOTAL,
    CACHE_MISSES_TOTAL,
    LATENCY_BUCKETS,
    METRIC_PREFIX,
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
from .metrics import QueueMetrics, get_queue_metrics, start_http_server

__all__ = [
    "CACHE_HITS_TOTAL",
    "CACHE_MISSES_TOTAL",
    "LATENCY_BUCKETS",
    "METRIC_PREFIX",
    "PROVIDER_CALL_DURATION_SECONDS",
    "REQUESTS_ADMITTED_TOTAL",
    "REQUESTS_COMPLETED_TOTAL",
    "REQUESTS_FAILED_TOTAL",
    "REQUESTS_PENDING",
    "REQUESTS_PROCESSING",
    "REQUESTS_RATE_LIMITED_TOTAL",
    "REQUEST_DURATION_SECONDS",
    "RETRIES_TOTAL",
    "QueueMetrics",
    "get_queue_metrics",
    "start_http_server",
]
