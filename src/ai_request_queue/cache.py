# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Response cache keyed by request fingerprint.

The fingerprint depends only on the request kind, prompt and context, so two
requests that would produce the same answer share one cache entry regardless
of who submitted them. Cache failures never fail a request: misses, store
errors and undecodable entries are all reported as a miss.
"""

import hashlib
import json
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from .exceptions import StoreConnectionError, StoreOperationError
from .stores.base import BaseStore
from .types.request import AIRequest
from .types.response import AIResponse

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "ai_response"


def _json_key(key: Any) -> str:
    if isinstance(key, str):
        return key
    if key is None or isinstance(key, (bool, int, float)):
        return json.dumps(key)
    return str(key)


def _normalize(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {_json_key(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    return value


def canonical_json(value: Any) -> str:
    """
    Serialize ``value`` with sorted keys and compact separators.

    Mapping keys are converted to strings first, the way JSON object keys
    are, so mappings mixing key types still serialize.
    """
    return json.dumps(
        _normalize(value), sort_keys=True, separators=(",", ":"), default=str
    )


def fingerprint(request: AIRequest) -> str:
    """
    Deterministic hash of the parts of a request that determine its answer.

    Two requests with equal kind, prompt and context (compared after key
    ordering is normalized) always map to the same fingerprint.
    """
    material = f"{request.kind.value}:{request.prompt}:{canonical_json(request.context or {})}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


class ResponseCache:
    """Stores AIResponse objects under their request fingerprint with a TTL."""

    def __init__(self, store: BaseStore, default_ttl: int = 3600) -> None:
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.store = store
        self.default_ttl = default_ttl
        self._hits = 0
        self._misses = 0
        self._errors = 0

    @staticmethod
    def fingerprint(request: AIRequest) -> str:
        return fingerprint(request)

    @staticmethod
    def _key(fp: str) -> str:
        return f"{CACHE_KEY_PREFIX}:{fp}"

    async def get(self, fp: str) -> AIResponse | None:
        """Return the cached response for ``fp`` or None."""
        if not self.store.is_available():
            self._misses += 1
            return None

        try:
            data = await self.store.get(self._key(fp))
        except (StoreConnectionError, StoreOperationError) as e:
            self._errors += 1
            logger.warning(f"Cache read failed for {fp[:12]}: {e}")
            return None

        if data is None:
            self._misses += 1
            logger.debug(f"Cache miss for {fp[:12]}")
            return None

        try:
            response = AIResponse.model_validate(data)
        except ValidationError as e:
            self._errors += 1
            logger.warning(f"Discarding undecodable cache entry {fp[:12]}: {e}")
            return None

        self._hits += 1
        logger.debug(f"Cache hit for {fp[:12]}")
        return response

    async def put(self, fp: str, response: AIResponse, ttl: int | None = None) -> None:
        """Store ``response`` under ``fp``. Failures are logged and suppressed."""
        if not self.store.is_available():
            return

        try:
            await self.store.set(
                self._key(fp),
                response.model_dump(mode="json"),
                ttl=self.default_ttl if ttl is None else ttl,
            )
        except (StoreConnectionError, StoreOperationError) as e:
            self._errors += 1
            logger.warning(f"Cache write failed for {fp[:12]}: {e}")

    async def invalidate(self, fp: str) -> bool:
        try:
            return await self.store.delete(self._key(fp))
        except (StoreConnectionError, StoreOperationError) as e:
            logger.warning(f"Cache invalidation failed for {fp[:12]}: {e}")
            return False

    def stats(self) -> dict[str, int]:
        return {"hits": self._hits, "misses": self._misses, "errors": self._errors}


__all__ = ["CACHE_KEY_PREFIX", "ResponseCache", "canonical_json", "fingerprint"]
