# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Upstream AI provider clients.

- AIClientFacade: Protocol the queue calls
- AIClients: Multi-provider facade with health tracking and fallback
- ProviderClient: Abstract single-provider client
- OpenAIProvider / AnthropicProvider: SDK-backed clients (require the
  providers extra, lazily imported)
"""

import importlib
from typing import TYPE_CHECKING, cast

from ai_request_queue.providers.base import (
    AIClientFacade,
    Completion,
    ProviderClient,
    classify_provider_error,
)
from ai_request_queue.providers.facade import AIClients

if TYPE_CHECKING:
    from ai_request_queue.providers.anthropic import AnthropicProvider
    from ai_request_queue.providers.openai import OpenAIProvider

__all__ = [
    "AIClientFacade",
    "AIClients",
    "AnthropicProvider",
    "Completion",
    "OpenAIProvider",
    "ProviderClient",
    "classify_provider_error",
]

_LAZY_PROVIDERS = {
    "OpenAIProvider": "openai",
    "AnthropicProvider": "anthropic",
}


def __getattr__(name: str) -> type:
    """Lazy import for the SDK-backed provider clients."""
    if name in _LAZY_PROVIDERS:
        module_name = _LAZY_PROVIDERS[name]
        try:
            module = importlib.import_module(f"ai_request_queue.providers.{module_name}")
            return cast(type, getattr(module, name))
        except ImportError as e:  # pragma: no cover
            raise ImportError(  # pragma: no cover
                f"'{name}' requires the 'providers' extra. "
                "Install with: pip install ai-request-queue[providers]"
            ) from e
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
