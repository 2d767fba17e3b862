# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Anthropic provider client built on the official async SDK."""

import logging
from typing import Any

from anthropic import AsyncAnthropic

from ..config import DEFAULT_ANTHROPIC_MODEL, ProviderSettings
from ..exceptions import ProviderError
from ..types.request import AIRequest
from ..types.response import TokenUsage
from .base import Completion, ProviderClient, classify_provider_error

logger = logging.getLogger(__name__)


class AnthropicProvider(ProviderClient):
    """Messages API completions against Anthropic."""

    def __init__(self, settings: ProviderSettings, client: Any | None = None) -> None:
        self.settings = settings
        self._client = client or AsyncAnthropic(api_key=settings.api_key)
        self._owned_client = client is None

    @property
    def name(self) -> str:
        return "anthropic"

    @property
    def model(self) -> str:
        return self.settings.model or DEFAULT_ANTHROPIC_MODEL

    async def complete(self, request: AIRequest) -> Completion:
        try:
            message = await self._client.messages.create(
                model=self.model,
                max_tokens=self.settings.max_tokens,
                temperature=self.settings.temperature,
                messages=[{"role": "user", "content": request.prompt}],
            )
        except Exception as e:
            raise classify_provider_error(e, provider=self.name, request_id=request.id) from e

        block = message.content[0] if message.content else None
        if block is None or block.type != "text":
            raise ProviderError(
                "Unexpected content type from Anthropic",
                code="EMPTY_RESPONSE",
                provider=self.name,
                retryable=True,
                request_id=request.id,
            )

        return Completion(
            content=block.text,
            model=self.model,
            usage=TokenUsage(
                prompt_tokens=message.usage.input_tokens,
                completion_tokens=message.usage.output_tokens,
            ),
        )

    async def health_check(self) -> bool:
        # There is no free listing endpoint to ping, so send the smallest completion
        await self._client.messages.create(
            model=self.model,
            max_tokens=10,
            messages=[{"role": "user", "content": "Hi"}],
        )
        return True

    async def close(self) -> None:
        if self._owned_client:
            await self._client.close()


__all__ = ["AnthropicProvider"]
