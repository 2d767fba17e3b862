# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Status snapshots exposed for telemetry.

These are read-only views handed to operational endpoints and the UI; they
carry no behaviour.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class QueueStatus:
    """Point-in-time view of queue statistics."""

    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
    total_processed: int = 0


@dataclass(frozen=True)
class RateLimitStatus:
    """Read-only view of an owner's minute window."""

    requests_remaining: int
    reset_time: datetime
    is_limited: bool


class HealthState(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    DOWN = "down"


class ProviderHealth(BaseModel):
    """Health of a single upstream provider as tracked by the facade."""

    provider: str
    status: HealthState = HealthState.HEALTHY
    response_time: float = 0.0
    """Smoothed response time in seconds."""
    error_rate: float = 0.0
    """Smoothed error rate between 0.0 and 1.0."""
    last_check: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


__all__ = ["HealthState", "ProviderHealth", "QueueStatus", "RateLimitStatus"]
