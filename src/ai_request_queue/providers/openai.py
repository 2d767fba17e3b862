# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""OpenAI provider client built on the official async SDK."""

import logging
from typing import Any

from openai import AsyncOpenAI

from ..config import DEFAULT_OPENAI_MODEL, ProviderSettings
from ..exceptions import ProviderError
from ..types.request import AIRequest
from ..types.response import TokenUsage
from .base import Completion, ProviderClient, classify_provider_error

logger = logging.getLogger(__name__)


class OpenAIProvider(ProviderClient):
    """Chat completions against the OpenAI API."""

    def __init__(self, settings: ProviderSettings, client: Any | None = None) -> None:
        self.settings = settings
        self._client = client or AsyncOpenAI(api_key=settings.api_key)
        self._owned_client = client is None

    @property
    def name(self) -> str:
        return "openai"

    @property
    def model(self) -> str:
        return self.settings.model or DEFAULT_OPENAI_MODEL

    async def complete(self, request: AIRequest) -> Completion:
        try:
            completion = await self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": request.prompt}],
                max_tokens=self.settings.max_tokens,
                temperature=self.settings.temperature,
            )
        except Exception as e:
            raise classify_provider_error(e, provider=self.name, request_id=request.id) from e

        choice = completion.choices[0] if completion.choices else None
        content = choice.message.content if choice is not None else None
        if not content:
            raise ProviderError(
                "No content in OpenAI response",
                code="EMPTY_RESPONSE",
                provider=self.name,
                retryable=True,
                request_id=request.id,
            )

        usage = completion.usage
        return Completion(
            content=content,
            model=self.model,
            usage=TokenUsage(
                prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
                total_tokens=getattr(usage, "total_tokens", 0) or 0,
            ),
        )

    async def health_check(self) -> bool:
        await self._client.models.list()
        return True

    async def close(self) -> None:
        if self._owned_client:
            await self._client.close()


__all__ = ["OpenAIProvider"]
