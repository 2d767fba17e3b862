# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Provider interface and upstream error classification."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from ..exceptions import (
    AuthenticationError,
    InvalidRequestError,
    ProviderError,
    ProviderRateLimitError,
    ProviderUnavailableError,
    QuotaExceededError,
)
from ..types.request import AIRequest
from ..types.response import AIResponse, TokenUsage
from ..types.status import ProviderHealth

logger = logging.getLogger(__name__)


@runtime_checkable
class AIClientFacade(Protocol):
    """
    What the queue needs from the upstream layer.

    Implementations report failures as ProviderError with an accurate
    ``retryable`` flag; the queue's retry policy relies on it.
    """

    async def generate_completion(self, request: AIRequest) -> AIResponse:
        """Produce a fresh response for ``request``."""
        ...

    def get_available_providers(self) -> list[str]:
        """Names of the providers that can currently be called."""
        ...

    def get_health_status(self) -> dict[str, ProviderHealth]:
        """Snapshot of per-provider health."""
        ...


@dataclass
class Completion:
    """Raw result of a single provider call, before the facade wraps it."""

    content: str
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)


class ProviderClient(ABC):
    """
    Abstract client for a single AI provider.

    Subclasses own the SDK client and translate its failures with
    ``classify_provider_error``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique provider name (e.g., 'openai', 'anthropic')."""
        pass

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier used for completions."""
        pass

    @abstractmethod
    async def complete(self, request: AIRequest) -> Completion:
        """
        Send ``request.prompt`` upstream and return the completion.

        Raises:
            ProviderError: Classified upstream failure
        """
        pass

    async def health_check(self) -> bool:
        """Cheap liveness probe. Raise or return False when unhealthy."""
        return True

    async def close(self) -> None:  # noqa: B027
        """Release SDK resources."""
        pass


def _status_code(error: BaseException) -> int | None:
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    return None


def _retry_after(error: BaseException) -> float | None:
    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None)
    if not headers:
        return None
    raw = headers.get("retry-after")
    try:
        return float(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None


def _is_connection_error(error: BaseException) -> bool:
    if isinstance(error, (ConnectionError, TimeoutError)):
        return True
    error_name = type(error).__name__.lower()
    return "connection" in error_name or "timeout" in error_name


def classify_provider_error(
    error: BaseException,
    provider: str | None = None,
    request_id: str | None = None,
) -> ProviderError:
    """
    Map an arbitrary upstream failure onto the ProviderError hierarchy.

    Status codes are read from ``status_code`` (or ``status``) on the
    error, which is where both official SDKs expose them.

    - 429 -> ProviderRateLimitError (retryable)
    - 401 -> AuthenticationError
    - 403 -> QuotaExceededError
    - 5xx -> ProviderUnavailableError (retryable)
    - other 4xx -> InvalidRequestError
    - connection failures and timeouts -> ProviderUnavailableError (retryable)
    - anything else -> retryable ProviderError with code UNKNOWN_ERROR
    """
    if isinstance(error, ProviderError):
        if error.provider is None:
            error.provider = provider
        if error.request_id is None:
            error.request_id = request_id
        return error

    message = str(error) or type(error).__name__
    status = _status_code(error)

    if status is not None:
        if status == 429:
            return ProviderRateLimitError(
                f"Rate limit exceeded: {message}",
                provider=provider,
                request_id=request_id,
                retry_after=_retry_after(error),
            )
        if status == 401:
            return AuthenticationError(
                f"Authentication failed: {message}",
                provider=provider,
                request_id=request_id,
            )
        if status == 403:
            return QuotaExceededError(
                f"Quota exceeded: {message}",
                provider=provider,
                request_id=request_id,
            )
        if status >= 500:
            return ProviderUnavailableError(
                f"Provider error {status}: {message}",
                provider=provider,
                request_id=request_id,
            )
        if 400 <= status < 500:
            return InvalidRequestError(
                f"Invalid request: {message}",
                provider=provider,
                request_id=request_id,
            )

    if _is_connection_error(error):
        return ProviderUnavailableError(
            f"Cannot reach provider: {message}",
            provider=provider,
            request_id=request_id,
        )

    return ProviderError(
        message,
        code="UNKNOWN_ERROR",
        provider=provider,
        retryable=True,
        request_id=request_id,
    )


__all__ = [
    "AIClientFacade",
    "Completion",
    "ProviderClient",
    "classify_provider_error",
]
