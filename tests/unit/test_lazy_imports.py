# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Tests for lazy import patterns in __init__.py modules.

These tests cover the __getattr__ lazy import mechanisms used for the
optional Redis and provider SDK dependencies.
"""

import pytest


class TestTopLevelLazyImports:
    """Test lazy imports from the top-level ai_request_queue module."""

    def test_lazy_redis_store_import(self):
        pytest.importorskip("redis")
        from ai_request_queue import RedisStore
        from ai_request_queue.stores.redis import RedisStore as Direct

        assert RedisStore is Direct

    def test_lazy_openai_provider_import(self):
        pytest.importorskip("openai")
        from ai_request_queue import OpenAIProvider

        assert OpenAIProvider.__name__ == "OpenAIProvider"

    def test_lazy_anthropic_provider_import(self):
        pytest.importorskip("anthropic")
        from ai_request_queue import AnthropicProvider

        assert AnthropicProvider.__name__ == "AnthropicProvider"

    def test_unknown_attribute_error_message_format(self):
        import ai_request_queue

        with pytest.raises(
            AttributeError,
            match=r"module 'ai_request_queue' has no attribute 'FakeClass'",
        ):
            _ = ai_request_queue.FakeClass

    def test_version(self):
        import ai_request_queue

        assert ai_request_queue.__version__ == "1.0.0"


class TestSubpackageLazyImports:
    def test_stores_redis_store(self):
        pytest.importorskip("redis")
        from ai_request_queue.stores import RedisStore

        assert RedisStore is not None

    def test_stores_unknown_attribute(self):
        import ai_request_queue.stores

        with pytest.raises(AttributeError, match=r"has no attribute"):
            _ = ai_request_queue.stores.NotAStore

    def test_providers_unknown_attribute(self):
        import ai_request_queue.providers

        with pytest.raises(AttributeError, match=r"has no attribute"):
            _ = ai_request_queue.providers.NotAProvider
