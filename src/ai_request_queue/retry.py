# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Bounded retry with exponential backoff for upstream calls.

Usage:
    policy = RetryPolicy(retries=3, min_delay=1.0, max_delay=4.0)
    response = await policy.run(lambda: clients.generate_completion(request))
"""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from .exceptions import ProviderError, ProviderTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FailedAttempt:
    """Report handed to ``on_failed_attempt`` after every failed attempt."""

    attempt_number: int
    retries_left: int
    error: BaseException


def default_should_retry(error: BaseException) -> bool:
    """ProviderError decides via its ``retryable`` flag; anything else is retried."""
    if isinstance(error, ProviderError):
        return error.retryable
    return True


class RetryPolicy:
    """
    Runs an async callable with up to ``retries`` extra attempts.

    The delay before attempt ``n + 1`` is
    ``min(min_delay * factor ** (n - 1), max_delay)``. The last error is
    re-raised unchanged when attempts are exhausted or the error is not
    retryable. Cancellation is never retried.
    """

    def __init__(
        self,
        retries: int = 3,
        min_delay: float = 1.0,
        max_delay: float = 4.0,
        factor: float = 2.0,
        should_retry: Callable[[BaseException], bool] | None = None,
        on_failed_attempt: Callable[[FailedAttempt], None] | None = None,
        attempt_timeout: float | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if retries < 0:
            raise ValueError("retries cannot be negative")
        if min_delay < 0 or max_delay < min_delay:
            raise ValueError("delays must satisfy 0 <= min_delay <= max_delay")
        if factor < 1:
            raise ValueError("factor must be at least 1")
        if attempt_timeout is not None and attempt_timeout <= 0:
            raise ValueError("attempt_timeout must be positive or None")

        self.retries = retries
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.factor = factor
        self.should_retry = should_retry or default_should_retry
        self.on_failed_attempt = on_failed_attempt
        self.attempt_timeout = attempt_timeout
        self._sleep = sleep

    def delay_for(self, attempt: int) -> float:
        """Backoff after the failure of attempt number ``attempt`` (1-based)."""
        delay: float = self.min_delay * (self.factor ** (attempt - 1))
        return min(delay, self.max_delay)

    async def _attempt(self, func: Callable[[], Awaitable[T]], request_id: str | None) -> T:
        if self.attempt_timeout is None:
            return await func()

        # Only our own deadline becomes ProviderTimeoutError; a TimeoutError
        # raised by func itself propagates unchanged.
        task = asyncio.ensure_future(func())
        try:
            done, _ = await asyncio.wait({task}, timeout=self.attempt_timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if task in done:
            return task.result()

        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        raise ProviderTimeoutError(
            f"Attempt timed out after {self.attempt_timeout:.1f}s",
            request_id=request_id,
            timeout=self.attempt_timeout,
        )

    async def run(
        self, func: Callable[[], Awaitable[T]], request_id: str | None = None
    ) -> T:
        """
        Execute ``func`` until it succeeds or the policy gives up.

        Args:
            func: Zero-argument coroutine factory, called once per attempt
            request_id: Included in log messages and timeout errors

        Raises:
            Exception: The last error raised by ``func``
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._attempt(func, request_id)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                retries_left = self.retries - (attempt - 1)
                label = request_id or "request"
                logger.warning(
                    f"{label} attempt {attempt} failed "
                    f"({retries_left} retries left): {type(e).__name__}: {e}"
                )

                if self.on_failed_attempt is not None:
                    self.on_failed_attempt(FailedAttempt(attempt, retries_left, e))

                if retries_left <= 0 or not self.should_retry(e):
                    raise

                delay = self.delay_for(attempt)
                logger.debug(f"{label} retrying in {delay:.2f}s")
                await self._sleep(delay)


__all__ = ["FailedAttempt", "RetryPolicy", "default_should_retry"]
