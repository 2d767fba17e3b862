# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Tests for the exception hierarchy."""

from datetime import datetime, timedelta, timezone

import pytest

from ai_request_queue.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DuplicateRequestError,
    InvalidRequestError,
    ProviderError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    QueueClearedError,
    QueueError,
    QueueShutdownError,
    QuotaExceededError,
    RateLimitExceeded,
    StoreConnectionError,
    StoreOperationError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "exc_class",
        [
            RateLimitExceeded,
            ProviderError,
            StoreConnectionError,
            StoreOperationError,
            ConfigurationError,
            DuplicateRequestError,
            QueueClearedError,
            QueueShutdownError,
        ],
    )
    def test_all_inherit_from_queue_error(self, exc_class):
        assert issubclass(exc_class, QueueError)

    @pytest.mark.parametrize(
        "exc_class",
        [
            ProviderRateLimitError,
            ProviderUnavailableError,
            InvalidRequestError,
            AuthenticationError,
            QuotaExceededError,
            ProviderTimeoutError,
        ],
    )
    def test_provider_errors_inherit_from_provider_error(self, exc_class):
        assert issubclass(exc_class, ProviderError)


class TestRetryability:
    def test_retryable_errors(self):
        assert ProviderRateLimitError("429").retryable is True
        assert ProviderUnavailableError("down").retryable is True
        assert ProviderTimeoutError("slow", timeout=5.0).retryable is True

    def test_non_retryable_errors(self):
        assert InvalidRequestError("bad").retryable is False
        assert AuthenticationError("401").retryable is False
        assert QuotaExceededError("403").retryable is False

    def test_provider_error_defaults(self):
        error = ProviderError("boom")
        assert error.code == "UNKNOWN_ERROR"
        assert error.retryable is False
        assert error.provider is None
        assert error.request_id is None
        assert error.timestamp.tzinfo is not None

    def test_codes(self):
        assert ProviderRateLimitError("x").code == "RATE_LIMIT_EXCEEDED"
        assert ProviderUnavailableError("x").code == "PROVIDER_UNAVAILABLE"
        assert InvalidRequestError("x").code == "INVALID_REQUEST"
        assert AuthenticationError("x").code == "AUTHENTICATION_ERROR"
        assert QuotaExceededError("x").code == "QUOTA_EXCEEDED"
        assert ProviderTimeoutError("x").code == "ATTEMPT_TIMEOUT"

    def test_rate_limit_error_keeps_retry_after(self):
        error = ProviderRateLimitError("slow down", provider="openai", retry_after=12.0)
        assert error.retry_after == 12.0
        assert error.provider == "openai"


class TestRateLimitExceeded:
    def test_attributes(self):
        reset = datetime.now(timezone.utc) + timedelta(seconds=30)
        error = RateLimitExceeded("limited", reset_time=reset, window="hour", owner_id="u1")
        assert error.reset_time == reset
        assert error.window == "hour"
        assert error.owner_id == "u1"
        assert str(error) == "limited"

    def test_retry_after_is_positive_for_future_reset(self):
        reset = datetime.now(timezone.utc) + timedelta(seconds=30)
        error = RateLimitExceeded("limited", reset_time=reset)
        assert 0 < error.retry_after <= 30

    def test_retry_after_never_negative(self):
        reset = datetime.now(timezone.utc) - timedelta(seconds=30)
        error = RateLimitExceeded("limited", reset_time=reset)
        assert error.retry_after == 0.0


class TestMiscErrors:
    def test_configuration_error_collects_problems(self):
        error = ConfigurationError("invalid", errors=["a", "b"])
        assert error.errors == ["a", "b"]
        assert ConfigurationError("invalid").errors == []

    def test_duplicate_request_error_carries_id(self):
        error = DuplicateRequestError("r1")
        assert error.request_id == "r1"
        assert "r1" in str(error)

    def test_catch_all_with_queue_error(self):
        with pytest.raises(QueueError):
            raise QuotaExceededError("quota")
