# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Response models for the AI request queue.

Responses are pydantic models so they can be stored in, and restored from,
the JSON-based cache store without hand-written serialization.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TokenUsage(BaseModel):
    """Token accounting reported by the provider."""

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @model_validator(mode="before")
    @classmethod
    def _fill_total(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("total_tokens"):
            data = {
                **data,
                "total_tokens": (data.get("prompt_tokens") or 0)
                + (data.get("completion_tokens") or 0),
            }
        return data


class AIResponse(BaseModel):
    """
    Result of processing an AIRequest.

    Created by the client facade (fresh) or restored from the response cache
    (``cached=True``). Immutable once created; use ``model_copy(update=...)``
    to derive a variant.
    """

    model_config = ConfigDict(frozen=True)

    request_id: str
    content: str
    provider: str
    model: str
    usage: TokenUsage = Field(default_factory=TokenUsage)
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    processing_time: float = 0.0
    """Seconds spent producing the response upstream."""
    cached: bool = False

    def as_cached(self, request_id: str | None = None) -> "AIResponse":
        """Return a copy flagged as served from the cache.

        ``request_id`` re-points the back-reference at the request that hit
        the cache; the stored entry keeps the id of the request that filled it.
        """
        update: dict[str, Any] = {"cached": True}
        if request_id is not None:
            update["request_id"] = request_id
        return self.model_copy(update=update)


__all__ = ["AIResponse", "TokenUsage"]
