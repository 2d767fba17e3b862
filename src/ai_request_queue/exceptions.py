# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Exception classes for the AI request queue.

This module defines the exception hierarchy used throughout the library.
All exceptions inherit from QueueError, making it easy to catch every
queue-related failure with a single except clause.

Only two families ever reach the caller of ``AIRequestQueue.add_request``:
RateLimitExceeded (admission) and ProviderError (upstream, after retries).
Store errors are absorbed by the rate limiter and the response cache.
"""

from datetime import datetime, timezone


class QueueError(Exception):
    """Base exception for all AI request queue errors.

    Example:
        try:
            response = await queue.add_request(request)
        except QueueError as e:
            logger.error(f"AI request failed: {e}")
    """

    pass


class RateLimitExceeded(QueueError):
    """Raised at admission when an owner has exhausted a rate limit window.

    Always terminal for the request; the queue never retries it. Callers
    may resubmit after ``reset_time``.

    Attributes:
        reset_time: UTC wall-clock time at which the exhausted window resets.
        window: Which window was exhausted ("minute" or "hour").
        owner_id: The owner that was limited, if known.

    Example:
        try:
            await queue.add_request(request)
        except RateLimitExceeded as e:
            return {"error": str(e), "retry_after": e.retry_after}
    """

    def __init__(
        self,
        message: str,
        reset_time: datetime,
        window: str = "minute",
        owner_id: str | None = None,
    ):
        super().__init__(message)
        self.reset_time = reset_time
        self.window = window
        self.owner_id = owner_id

    @property
    def retry_after(self) -> float:
        """Seconds from now until the window resets (never negative)."""
        delta = (self.reset_time - datetime.now(timezone.utc)).total_seconds()
        return max(0.0, delta)


class ProviderError(QueueError):
    """Raised by the client facade when an upstream AI provider call fails.

    The ``retryable`` flag is what the retry policy inspects to decide
    between backing off and failing fast.

    Attributes:
        code: Stable machine-readable error code.
        provider: Name of the provider that failed, if known.
        retryable: Whether retrying the same request may succeed.
        request_id: Identifier of the request being processed.
        timestamp: UTC time the error was created.
    """

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        provider: str | None = None,
        retryable: bool = False,
        request_id: str | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.provider = provider
        self.retryable = retryable
        self.request_id = request_id
        self.timestamp = datetime.now(timezone.utc)


class ProviderRateLimitError(ProviderError):
    """Upstream provider answered 429."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        request_id: str | None = None,
        retry_after: float | None = None,
    ):
        super().__init__(
            message,
            code="RATE_LIMIT_EXCEEDED",
            provider=provider,
            retryable=True,
            request_id=request_id,
        )
        self.retry_after = retry_after


class ProviderUnavailableError(ProviderError):
    """Provider is down, unreachable, or not configured."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        request_id: str | None = None,
    ):
        super().__init__(
            message,
            code="PROVIDER_UNAVAILABLE",
            provider=provider,
            retryable=True,
            request_id=request_id,
        )


class InvalidRequestError(ProviderError):
    """The provider rejected the request itself; retrying cannot help."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        request_id: str | None = None,
    ):
        super().__init__(
            message,
            code="INVALID_REQUEST",
            provider=provider,
            retryable=False,
            request_id=request_id,
        )


class AuthenticationError(ProviderError):
    """Credentials were rejected by the provider."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        request_id: str | None = None,
    ):
        super().__init__(
            message,
            code="AUTHENTICATION_ERROR",
            provider=provider,
            retryable=False,
            request_id=request_id,
        )


class QuotaExceededError(ProviderError):
    """The account quota at the provider is used up."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        request_id: str | None = None,
    ):
        super().__init__(
            message,
            code="QUOTA_EXCEEDED",
            provider=provider,
            retryable=False,
            request_id=request_id,
        )


class ProviderTimeoutError(ProviderError):
    """A single attempt exceeded the configured attempt timeout."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        request_id: str | None = None,
        timeout: float | None = None,
    ):
        super().__init__(
            message,
            code="ATTEMPT_TIMEOUT",
            provider=provider,
            retryable=True,
            request_id=request_id,
        )
        self.timeout = timeout


class StoreConnectionError(QueueError):
    """Raised when the counter/cache store cannot be reached.

    Example:
        try:
            await store.ping()
        except StoreConnectionError:
            logger.warning("Redis unavailable, falling back to memory store")
            store = MemoryStore()
    """

    pass


class StoreOperationError(QueueError):
    """Raised when a store operation fails after connecting (bad payload etc.)."""

    pass


class ConfigurationError(QueueError):
    """Raised when configuration is invalid or incomplete.

    Common causes include:
    - No AI provider API key configured
    - API keys with an unexpected format
    """

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []


class DuplicateRequestError(QueueError):
    """Raised when a request id is already outstanding in the queue."""

    def __init__(self, request_id: str):
        super().__init__(f"Request already outstanding: {request_id}")
        self.request_id = request_id


class QueueClearedError(QueueError):
    """Raised to callers whose waiting requests were dropped by clear_queue()."""

    pass


class QueueShutdownError(QueueError):
    """Raised when a request is submitted to a queue that is shutting down."""

    pass


__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "DuplicateRequestError",
    "InvalidRequestError",
    "ProviderError",
    "ProviderRateLimitError",
    "ProviderTimeoutError",
    "ProviderUnavailableError",
    "QueueClearedError",
    "QueueError",
    "QueueShutdownError",
    "QuotaExceededError",
    "RateLimitExceeded",
    "StoreConnectionError",
    "StoreOperationError",
]
