"""Embedding cache capability keyed by content hash."""

import hashlib
import json
import logging
import time
from functools import lru_cache
from typing import Any, Protocol

from redis.asyncio import Redis
from redis.exceptions import RedisError

from query_insights.config import settings
from query_insights.core.redis import get_redis_client

logger = logging.getLogger(__name__)

EMBEDDING_CACHE_PREFIX = "embedding"


def generate_cache_key(prefix: str, *parts: Any) -> str:
    """Build a stable cache key from a prefix and JSON-encodable parts."""
    digest = hashlib.sha256(
        json.dumps(parts, sort_keys=True, default=str).encode("utf-8")
    ).hexdigest()
    return f"{prefix}:{digest}"


class EmbeddingCache(Protocol):
    """Get/set access to cached vectors."""

    async def get(self, key: str) -> list[float] | None: ...

    async def set(self, key: str, vector: list[float]) -> None: ...


class RedisEmbeddingCache:
    """Vectors stored as JSON strings with a TTL."""

    def __init__(self, client: Redis, ttl_seconds: int | None = None) -> None:
        self._client = client
        self.ttl_seconds = ttl_seconds or settings.embedding_cache_ttl_seconds

    async def get(self, key: str) -> list[float] | None:
        try:
            raw = await self._client.get(key)
        except RedisError as e:
            logger.warning("Embedding cache read failed", extra={"key": key, "error": str(e)})
            return None
        if not raw:
            return None
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Embedding cache entry corrupt", extra={"key": key})
            return None
        if not isinstance(value, list) or not value:
            return None
        return [float(x) for x in value]

    async def set(self, key: str, vector: list[float]) -> None:
        try:
            await self._client.set(key, json.dumps(vector), ex=self.ttl_seconds)
        except RedisError as e:
            logger.warning("Embedding cache write failed", extra={"key": key, "error": str(e)})


class InMemoryEmbeddingCache:
    """Process-local cache; entries expire after the TTL."""

    def __init__(self, ttl_seconds: int | None = None) -> None:
        self.ttl_seconds = ttl_seconds or settings.embedding_cache_ttl_seconds
        self._entries: dict[str, tuple[float, list[float]]] = {}

    async def get(self, key: str) -> list[float] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, vector = entry
        if time.monotonic() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return list(vector)

    async def set(self, key: str, vector: list[float]) -> None:
        self._entries[key] = (time.monotonic(), list(vector))

    def __len__(self) -> int:
        return len(self._entries)


def build_embedding_cache() -> EmbeddingCache | None:
    """Create the cache backend selected in settings."""
    backend = settings.embedding_cache_backend
    if backend == "redis":
        return RedisEmbeddingCache(get_redis_client())
    if backend == "memory":
        return InMemoryEmbeddingCache()
    return None


@lru_cache
def get_embedding_cache() -> EmbeddingCache | None:
    """Process-wide embedding cache shared across requests and runs."""
    return build_embedding_cache()
