# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Unit tests for the per-owner minute/hour RateLimiter."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from ai_request_queue.exceptions import (
    RateLimitExceeded,
    StoreConnectionError,
    StoreOperationError,
)
from ai_request_queue.rate_limiter import (
    HOUR_WINDOW,
    MINUTE_WINDOW,
    RateLimiter,
    rate_limit_key,
)
from ai_request_queue.stores import MemoryStore

# 2026-01-01T00:00:30Z, 30 seconds into a minute window
START = 1_767_225_630.0


class FakeClock:
    def __init__(self, now: float = START) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return MemoryStore(namespace="test", clock=clock)


@pytest.fixture
def broken_store():
    store = MagicMock()
    store.is_available.return_value = True
    store.get = AsyncMock(side_effect=StoreConnectionError("down"))
    store.set = AsyncMock()
    return store


class TestRateLimitKey:
    def test_key_format(self):
        assert rate_limit_key("u1", 120.0, MINUTE_WINDOW) == "rate_limit:u1:2"
        assert rate_limit_key("u1", 7199.0, HOUR_WINDOW) == "rate_limit:u1:1"


class TestCheckAndReserve:
    @pytest.mark.asyncio
    async def test_admits_and_counts(self, store, clock):
        limiter = RateLimiter(store, requests_per_minute=5, clock=clock)

        await limiter.check_and_reserve("u1")
        await limiter.check_and_reserve("u1")

        assert await store.get(rate_limit_key("u1", START, MINUTE_WINDOW)) == 2
        assert await store.get(rate_limit_key("u1", START, HOUR_WINDOW)) == 2

    @pytest.mark.asyncio
    async def test_minute_limit(self, store, clock):
        limiter = RateLimiter(store, requests_per_minute=2, clock=clock)
        await limiter.check_and_reserve("u1")
        await limiter.check_and_reserve("u1")

        with pytest.raises(RateLimitExceeded) as exc_info:
            await limiter.check_and_reserve("u1")

        error = exc_info.value
        assert error.window == "minute"
        assert error.owner_id == "u1"
        assert error.reset_time == datetime.fromtimestamp(START + 30, tz=timezone.utc)

    @pytest.mark.asyncio
    async def test_rejection_does_not_count(self, store, clock):
        limiter = RateLimiter(store, requests_per_minute=1, clock=clock)
        await limiter.check_and_reserve("u1")
        with pytest.raises(RateLimitExceeded):
            await limiter.check_and_reserve("u1")

        assert await store.get(rate_limit_key("u1", START, MINUTE_WINDOW)) == 1
        assert await store.get(rate_limit_key("u1", START, HOUR_WINDOW)) == 1

    @pytest.mark.asyncio
    async def test_owners_are_independent(self, store, clock):
        limiter = RateLimiter(store, requests_per_minute=1, clock=clock)
        await limiter.check_and_reserve("u1")
        await limiter.check_and_reserve("u2")

    @pytest.mark.asyncio
    async def test_new_minute_window_admits_again(self, store, clock):
        limiter = RateLimiter(store, requests_per_minute=1, clock=clock)
        await limiter.check_and_reserve("u1")

        clock.now += MINUTE_WINDOW
        await limiter.check_and_reserve("u1")

    @pytest.mark.asyncio
    async def test_hour_limit(self, store, clock):
        limiter = RateLimiter(
            store, requests_per_minute=10, requests_per_hour=2, clock=clock
        )
        await limiter.check_and_reserve("u1")
        clock.now += MINUTE_WINDOW
        await limiter.check_and_reserve("u1")
        clock.now += MINUTE_WINDOW

        with pytest.raises(RateLimitExceeded) as exc_info:
            await limiter.check_and_reserve("u1")

        assert exc_info.value.window == "hour"
        hour_reset = (int(START // HOUR_WINDOW) + 1) * HOUR_WINDOW
        assert exc_info.value.reset_time.timestamp() == hour_reset

    @pytest.mark.asyncio
    async def test_minute_checked_before_hour(self, store, clock):
        limiter = RateLimiter(
            store, requests_per_minute=1, requests_per_hour=1, clock=clock
        )
        await limiter.check_and_reserve("u1")
        with pytest.raises(RateLimitExceeded) as exc_info:
            await limiter.check_and_reserve("u1")
        assert exc_info.value.window == "minute"

    def test_invalid_ceilings(self, store):
        with pytest.raises(ValueError):
            RateLimiter(store, requests_per_minute=0)


class TestStoreFailures:
    @pytest.mark.asyncio
    async def test_fail_open_admits(self, broken_store):
        limiter = RateLimiter(broken_store, fail_open=True)
        await limiter.check_and_reserve("u1")
        broken_store.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fail_closed_raises(self, broken_store):
        limiter = RateLimiter(broken_store, fail_open=False)
        with pytest.raises(StoreConnectionError):
            await limiter.check_and_reserve("u1")

    @pytest.mark.asyncio
    async def test_fail_closed_wraps_operation_errors(self, broken_store):
        broken_store.get.side_effect = StoreOperationError("bad payload")
        limiter = RateLimiter(broken_store, fail_open=False)

        with pytest.raises(StoreConnectionError) as exc_info:
            await limiter.check_and_reserve("u1")
        assert isinstance(exc_info.value.__cause__, StoreOperationError)

    @pytest.mark.asyncio
    async def test_unavailable_store_is_skipped(self, broken_store):
        broken_store.is_available.return_value = False
        limiter = RateLimiter(broken_store)

        await limiter.check_and_reserve("u1")

        broken_store.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unavailable_store_fail_closed(self, broken_store):
        broken_store.is_available.return_value = False
        limiter = RateLimiter(broken_store, fail_open=False)
        with pytest.raises(StoreConnectionError):
            await limiter.check_and_reserve("u1")


class TestStatus:
    @pytest.mark.asyncio
    async def test_fresh_owner(self, store, clock):
        limiter = RateLimiter(store, requests_per_minute=5, clock=clock)
        status = await limiter.status("u1")

        assert status.requests_remaining == 5
        assert status.is_limited is False
        assert status.reset_time == datetime.fromtimestamp(START + 30, tz=timezone.utc)

    @pytest.mark.asyncio
    async def test_status_never_reserves(self, store, clock):
        limiter = RateLimiter(store, requests_per_minute=5, clock=clock)
        await limiter.status("u1")
        await limiter.status("u1")
        assert await store.get(rate_limit_key("u1", START, MINUTE_WINDOW)) is None

    @pytest.mark.asyncio
    async def test_exhausted_owner_is_limited(self, store, clock):
        limiter = RateLimiter(store, requests_per_minute=2, clock=clock)
        await limiter.check_and_reserve("u1")
        await limiter.check_and_reserve("u1")

        status = await limiter.status("u1")
        assert status.requests_remaining == 0
        assert status.is_limited is True

    @pytest.mark.asyncio
    async def test_unavailable_store_reports_full_quota(self, broken_store):
        broken_store.is_available.return_value = False
        limiter = RateLimiter(broken_store, requests_per_minute=7)

        status = await limiter.status("u1")

        assert status.requests_remaining == 7
        assert status.is_limited is False

    @pytest.mark.asyncio
    async def test_read_error_reports_limited(self, broken_store):
        limiter = RateLimiter(broken_store, requests_per_minute=7)

        status = await limiter.status("u1")

        assert status.requests_remaining == 0
        assert status.is_limited is True
