# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Per-owner rate limiting over fixed minute and hour windows.

Counters live in the shared store under ``rate_limit:{owner}:{window_index}``
where ``window_index`` is the wall-clock time divided by the window length.
Each counter expires together with its window, so no cleanup is needed.

The check-then-increment sequence is not atomic: two concurrent admissions
for the same owner may both read the same count and the ceiling can be
overshot by the number of in-flight admissions.
"""

import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone

from .exceptions import RateLimitExceeded, StoreConnectionError, StoreOperationError
from .stores.base import BaseStore
from .types.status import RateLimitStatus

logger = logging.getLogger(__name__)

MINUTE_WINDOW = 60
HOUR_WINDOW = 3600


def _window_index(now: float, window: int) -> int:
    return int(now // window)


def _window_reset(now: float, window: int) -> datetime:
    reset = (_window_index(now, window) + 1) * window
    return datetime.fromtimestamp(reset, tz=timezone.utc)


def rate_limit_key(owner_id: str, now: float, window: int) -> str:
    """Store key of ``owner_id``'s counter for the window containing ``now``."""
    return f"rate_limit:{owner_id}:{_window_index(now, window)}"


class RateLimiter:
    """
    Enforces per-owner request ceilings for the minute and hour windows.

    Args:
        store: Store holding the counters
        requests_per_minute: Ceiling for the 60-second window
        requests_per_hour: Ceiling for the 3600-second window
        fail_open: When True, store failures admit the request with a warning;
            when False they are raised as StoreConnectionError
        clock: Wall-clock source in seconds since the epoch
    """

    def __init__(
        self,
        store: BaseStore,
        requests_per_minute: int = 60,
        requests_per_hour: int = 1000,
        fail_open: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if requests_per_minute <= 0 or requests_per_hour <= 0:
            raise ValueError("rate limit ceilings must be greater than 0")
        self.store = store
        self.requests_per_minute = requests_per_minute
        self.requests_per_hour = requests_per_hour
        self.fail_open = fail_open
        self._clock = clock

    async def check_and_reserve(self, owner_id: str) -> None:
        """
        Admit one request for ``owner_id`` or raise RateLimitExceeded.

        On admission both window counters are incremented. The minute window
        is checked before the hour window.

        Raises:
            RateLimitExceeded: One of the windows is at its ceiling
            StoreConnectionError: The store failed and ``fail_open`` is False
        """
        if not self.store.is_available():
            self._store_failure(owner_id, StoreConnectionError("store unavailable"))
            return

        now = self._clock()
        minute_key = rate_limit_key(owner_id, now, MINUTE_WINDOW)
        hour_key = rate_limit_key(owner_id, now, HOUR_WINDOW)

        try:
            minute_count = int(await self.store.get(minute_key) or 0)
            hour_count = int(await self.store.get(hour_key) or 0)

            if minute_count >= self.requests_per_minute:
                raise RateLimitExceeded(
                    f"Rate limit exceeded: {self.requests_per_minute} requests per minute",
                    reset_time=_window_reset(now, MINUTE_WINDOW),
                    window="minute",
                    owner_id=owner_id,
                )

            if hour_count >= self.requests_per_hour:
                raise RateLimitExceeded(
                    f"Rate limit exceeded: {self.requests_per_hour} requests per hour",
                    reset_time=_window_reset(now, HOUR_WINDOW),
                    window="hour",
                    owner_id=owner_id,
                )

            await self.store.set(minute_key, minute_count + 1, ttl=MINUTE_WINDOW)
            await self.store.set(hour_key, hour_count + 1, ttl=HOUR_WINDOW)
        except (StoreConnectionError, StoreOperationError, ValueError, TypeError) as e:
            self._store_failure(owner_id, e)

    def _store_failure(self, owner_id: str, error: Exception) -> None:
        if not self.fail_open:
            if isinstance(error, StoreConnectionError):
                raise error
            raise StoreConnectionError(
                f"Rate limit store failed for {owner_id}: {error}"
            ) from error
        logger.warning(f"Rate limit check skipped for {owner_id}: {error}")

    async def status(self, owner_id: str) -> RateLimitStatus:
        """
        Read-only view of ``owner_id``'s minute window. Never reserves.

        An unavailable store reports the full quota; a store that fails while
        reading reports the owner as limited.
        """
        now = self._clock()

        if not self.store.is_available():
            return RateLimitStatus(
                requests_remaining=self.requests_per_minute,
                reset_time=datetime.fromtimestamp(now + MINUTE_WINDOW, tz=timezone.utc),
                is_limited=False,
            )

        try:
            count = int(
                await self.store.get(rate_limit_key(owner_id, now, MINUTE_WINDOW)) or 0
            )
        except (StoreConnectionError, StoreOperationError, ValueError, TypeError) as e:
            logger.error(f"Failed to read rate limit status for {owner_id}: {e}")
            return RateLimitStatus(
                requests_remaining=0,
                reset_time=datetime.fromtimestamp(now + MINUTE_WINDOW, tz=timezone.utc),
                is_limited=True,
            )

        remaining = max(0, self.requests_per_minute - count)
        return RateLimitStatus(
            requests_remaining=remaining,
            reset_time=_window_reset(now, MINUTE_WINDOW),
            is_limited=remaining == 0,
        )


__all__ = ["HOUR_WINDOW", "MINUTE_WINDOW", "RateLimiter", "rate_limit_key"]
