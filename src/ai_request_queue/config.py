# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Configuration for the AI request queue.

This module provides the queue configuration (rate limiting, concurrency,
retry and caching settings) and the per-provider settings consumed by the
client facade. Every value can be supplied explicitly or read from the
environment.
"""

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}, using {default}")
        return default


def _env_float(
    name: str, default: float | None, allow_none: bool = False
) -> float | None:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    if allow_none and raw.lower() in ("none", "off"):
        return None
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}, using {default}")
        return default


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() != "false"


@dataclass
class QueueConfig:
    """
    Configuration for the AI request queue.

    All values are externally supplied; the defaults below are the documented
    fallbacks and match the service's production settings.
    """

    # === Rate Limiting ===

    requests_per_minute: int = 60
    """Per-owner ceiling for the 60-second window. Also the scheduler-wide
    dispatch cap per ``dispatch_interval``."""

    requests_per_hour: int = 1000
    """Per-owner ceiling for the 3600-second window."""

    fail_open: bool = True
    """Allow requests when the counter store is unavailable.

    Availability is preferred over strict enforcement. Set to False to
    surface StoreConnectionError to callers instead."""

    # === Scheduling ===

    concurrent_requests: int = 5
    """Maximum number of simultaneously executing requests."""

    dispatch_interval: float = 60.0
    """Length in seconds of the sliding window for the dispatch cap."""

    # === Retry ===

    retry_attempts: int = 3
    """Additional attempts after the first failure."""

    retry_delay: float = 1.0
    """Minimum delay between attempts in seconds."""

    retry_max_multiplier: float = 4.0
    """Maximum delay expressed as a multiple of ``retry_delay``."""

    attempt_timeout: float | None = 60.0
    """Wall-clock bound on a single upstream attempt in seconds (None disables)."""

    # === Caching ===

    cache_ttl: int = 3600
    """Time-to-live of cached responses in seconds."""

    # === Providers ===

    fallback_enabled: bool = True
    """Let the facade try another provider when the selected one fails."""

    # === Metrics ===

    metrics_enabled: bool = True
    """Record Prometheus metrics on the process-wide registry."""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.requests_per_minute <= 0:
            raise ValueError("requests_per_minute must be greater than 0")
        if self.requests_per_hour <= 0:
            raise ValueError("requests_per_hour must be greater than 0")
        if self.concurrent_requests <= 0:
            raise ValueError("concurrent_requests must be greater than 0")
        if self.retry_attempts < 0:
            raise ValueError("retry_attempts cannot be negative")
        if self.retry_delay < 0:
            raise ValueError("retry_delay cannot be negative")
        if self.retry_max_multiplier < 1:
            raise ValueError("retry_max_multiplier must be at least 1")
        if self.attempt_timeout is not None and self.attempt_timeout <= 0:
            raise ValueError("attempt_timeout must be positive or None")
        if self.cache_ttl <= 0:
            raise ValueError("cache_ttl must be positive")
        if self.dispatch_interval <= 0:
            raise ValueError("dispatch_interval must be positive")

    @property
    def retry_max_delay(self) -> float:
        """Upper bound for the backoff delay in seconds."""
        return self.retry_delay * self.retry_max_multiplier

    @classmethod
    def from_env(cls) -> "QueueConfig":
        """
        Build a configuration from environment variables.

        Environment Variables:
            AI_REQUESTS_PER_MINUTE, AI_REQUESTS_PER_HOUR, AI_CONCURRENT_REQUESTS,
            AI_RETRY_ATTEMPTS, AI_RETRY_DELAY (milliseconds), AI_CACHE_TTL,
            AI_FALLBACK_ENABLED, AI_RATE_LIMIT_FAIL_OPEN, AI_ATTEMPT_TIMEOUT
            (seconds, "off" disables), AI_METRICS_ENABLED.
        """
        defaults = cls()
        retry_delay_ms = _env_int("AI_RETRY_DELAY", int(defaults.retry_delay * 1000))
        return cls(
            requests_per_minute=_env_int(
                "AI_REQUESTS_PER_MINUTE", defaults.requests_per_minute
            ),
            requests_per_hour=_env_int("AI_REQUESTS_PER_HOUR", defaults.requests_per_hour),
            concurrent_requests=_env_int(
                "AI_CONCURRENT_REQUESTS", defaults.concurrent_requests
            ),
            retry_attempts=_env_int("AI_RETRY_ATTEMPTS", defaults.retry_attempts),
            retry_delay=retry_delay_ms / 1000.0,
            cache_ttl=_env_int("AI_CACHE_TTL", defaults.cache_ttl),
            fallback_enabled=_env_flag("AI_FALLBACK_ENABLED", defaults.fallback_enabled),
            fail_open=_env_flag("AI_RATE_LIMIT_FAIL_OPEN", defaults.fail_open),
            attempt_timeout=_env_float(
                "AI_ATTEMPT_TIMEOUT", defaults.attempt_timeout, allow_none=True
            ),
            metrics_enabled=_env_flag("AI_METRICS_ENABLED", defaults.metrics_enabled),
        )


@dataclass
class ProviderSettings:
    """Connection and sampling settings for a single AI provider."""

    name: str
    api_key: str = ""
    model: str = ""
    max_tokens: int = 2000
    temperature: float = 0.7

    def __post_init__(self) -> None:
        if self.max_tokens < 1:
            raise ValueError("max_tokens must be at least 1")
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError("temperature must be between 0.0 and 2.0")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls, name: str, default_model: str) -> "ProviderSettings":
        """
        Read settings for ``name`` from ``{NAME}_API_KEY``, ``{NAME}_MODEL``,
        ``{NAME}_MAX_TOKENS`` and ``{NAME}_TEMPERATURE``.
        """
        prefix = name.upper()
        temperature = _env_float(f"{prefix}_TEMPERATURE", 0.7)
        return cls(
            name=name,
            api_key=os.environ.get(f"{prefix}_API_KEY", ""),
            model=os.environ.get(f"{prefix}_MODEL") or default_model,
            max_tokens=_env_int(f"{prefix}_MAX_TOKENS", 2000),
            temperature=0.7 if temperature is None else temperature,
        )


DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_ANTHROPIC_MODEL = "claude-3-haiku-20240307"

_KEY_PREFIXES = {
    "openai": "sk-",
    "anthropic": "sk-ant-",
}


def default_provider_settings() -> list[ProviderSettings]:
    """Settings for the two supported providers, read from the environment."""
    return [
        ProviderSettings.from_env("openai", DEFAULT_OPENAI_MODEL),
        ProviderSettings.from_env("anthropic", DEFAULT_ANTHROPIC_MODEL),
    ]


def validate_provider_settings(settings: list[ProviderSettings]) -> list[str]:
    """
    Check provider settings and return a list of human-readable problems.

    An empty list means the settings are usable.
    """
    errors: list[str] = []

    if not any(s.enabled for s in settings):
        errors.append("At least one AI provider API key must be configured")

    for s in settings:
        prefix = _KEY_PREFIXES.get(s.name)
        if s.enabled and prefix and not s.api_key.startswith(prefix):
            errors.append(f"{s.name} API key appears to be invalid")
        if s.enabled and not s.model:
            errors.append(f"{s.name} model must be set")

    return errors


__all__ = [
    "DEFAULT_ANTHROPIC_MODEL",
    "DEFAULT_OPENAI_MODEL",
    "ProviderSettings",
    "QueueConfig",
    "default_provider_settings",
    "validate_provider_settings",
]
