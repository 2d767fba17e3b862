# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Request types for the AI request queue.

This module defines the unit of work submitted for AI processing together
with the enums used to classify and prioritize it.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class RequestKind(str, Enum):
    """Kind of AI work. Opaque to the queue; used for facade routing and caching."""

    CONTENT_GENERATION = "content-generation"
    ANALYSIS = "analysis"
    OPTIMIZATION = "optimization"
    CONTEXT = "context"


class Priority(str, Enum):
    """
    Scheduling priority of a request.

    Priority decides dispatch order only, never admission. Higher weights
    are dispatched first among waiting requests.
    """

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"

    @property
    def weight(self) -> int:
        return _PRIORITY_WEIGHTS[self]

    @classmethod
    def coerce(cls, value: "Priority | str | None") -> "Priority":
        """Convert a string to a Priority; unknown values fall back to NORMAL."""
        if isinstance(value, Priority):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.NORMAL


_PRIORITY_WEIGHTS = {
    Priority.LOW: 1,
    Priority.NORMAL: 5,
    Priority.HIGH: 10,
}


@dataclass
class AIRequest:
    """
    A unit of work submitted for AI processing.

    Created by the caller at submission and discarded by the queue once a
    response or a terminal failure is produced. Requests are never persisted:
    in-flight work is lost on process restart.

    Attributes:
        prompt: Text payload sent upstream (must not be empty)
        owner_id: Submitting user; the unit of rate limiting (must not be empty)
        kind: Request kind, participates in the cache fingerprint
        context: Optional structured payload, participates in the cache fingerprint
        priority: Dispatch priority (low/normal/high)
        id: Unique identifier; generated when not supplied
        submitted_at: UTC submission time, diagnostics only
        metadata: Free-form caller data, ignored by the queue
    """

    prompt: str
    owner_id: str
    kind: RequestKind = RequestKind.CONTENT_GENERATION
    context: dict[str, Any] | None = None
    priority: Priority = Priority.NORMAL
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if not self.owner_id:
            raise ValueError("owner_id must not be empty")
        if not self.prompt:
            raise ValueError("prompt must not be empty")
        if not self.id:
            raise ValueError("id must not be empty")
        self.kind = RequestKind(self.kind)
        self.priority = Priority.coerce(self.priority)


__all__ = ["AIRequest", "Priority", "RequestKind"]
