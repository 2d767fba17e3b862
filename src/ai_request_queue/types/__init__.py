# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Type definitions for requests, responses and status snapshots."""

from .request import AIRequest, Priority, RequestKind
from .response import AIResponse, TokenUsage
from .status import HealthState, ProviderHealth, QueueStatus, RateLimitStatus

__all__ = [
    # Requests
    "AIRequest",
    # Responses
    "AIResponse",
    # Status
    "HealthState",
    "Priority",
    "ProviderHealth",
    "QueueStatus",
    "RateLimitStatus",
    "RequestKind",
    "TokenUsage",
]
