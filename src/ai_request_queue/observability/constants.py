# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Metric name constants following Prometheus naming conventions.

All metric names use the `ai_queue_` prefix.

Naming Conventions:
    - Counter metrics end with `_total`
    - Histogram metrics for time end with `_seconds`
    - Gauges use present-tense descriptive names

Label Best Practices:
    To prevent label cardinality explosion, use only:
    - `priority` - Request priority (enum: low, normal, high)
    - `window` - Rate limit window (enum: minute, hour)
    - `reason` - Failure code (enum: RATE_LIMIT_EXCEEDED, PROVIDER_UNAVAILABLE, ...)
    - `provider` - Provider name (categorical: openai, anthropic)
    - `outcome` - Provider call outcome (enum: success, error)

    NEVER use:
    - `request_id` - Unique per request (unbounded!)
    - `owner_id` - Unique per user (unbounded!)
"""

METRIC_PREFIX = "ai_queue"
"""Prefix for all Prometheus metrics in this library."""


# =============================================================================
# Admission
# =============================================================================

REQUESTS_ADMITTED_TOTAL = f"{METRIC_PREFIX}_requests_admitted_total"
"""Requests that passed the rate limiter and entered the scheduler."""

REQUESTS_RATE_LIMITED_TOTAL = f"{METRIC_PREFIX}_requests_rate_limited_total"
"""Requests rejected at admission by the per-owner rate limiter."""

# =============================================================================
# Outcomes
# =============================================================================

REQUESTS_COMPLETED_TOTAL = f"{METRIC_PREFIX}_requests_completed_total"
"""Requests that produced a response (fresh or cached)."""

REQUESTS_FAILED_TOTAL = f"{METRIC_PREFIX}_requests_failed_total"
"""Requests that failed after dispatch."""

RETRIES_TOTAL = f"{METRIC_PREFIX}_retries_total"
"""Failed upstream attempts that were followed by another attempt."""

# =============================================================================
# Cache
# =============================================================================

CACHE_HITS_TOTAL = f"{METRIC_PREFIX}_cache_hits_total"
"""Dispatched requests answered from the response cache."""

CACHE_MISSES_TOTAL = f"{METRIC_PREFIX}_cache_misses_total"
"""Dispatched requests that had to go upstream."""

# =============================================================================
# Gauges
# =============================================================================

REQUESTS_PENDING = f"{METRIC_PREFIX}_requests_pending"
"""Requests admitted but not yet dispatched."""

REQUESTS_PROCESSING = f"{METRIC_PREFIX}_requests_processing"
"""Requests currently executing."""

# =============================================================================
# Latency
# =============================================================================

REQUEST_DURATION_SECONDS = f"{METRIC_PREFIX}_request_duration_seconds"
"""Time from admission to terminal outcome."""

PROVIDER_CALL_DURATION_SECONDS = f"{METRIC_PREFIX}_provider_call_duration_seconds"
"""Duration of a single upstream provider call."""

LATENCY_BUCKETS: list[float] = [
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
    30.0,
    60.0,
    120.0,
]
"""Latency buckets in seconds; AI completions routinely take several seconds."""


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
]
