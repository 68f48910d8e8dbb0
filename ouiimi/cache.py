"""
Short-lived caching for public listing queries
Uses Redis when configured, otherwise a per-process TTL map
"""

import fnmatch
import json
import logging
import time
from threading import Lock
from typing import Any, Callable, Optional

import redis

from .rate_limiter import get_redis_client

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30


class Cache:
    """JSON cache wrapper with Redis storage and in-memory fallback"""

    def __init__(self):
        self._memory: dict[str, tuple[float, str]] = {}
        self._lock = Lock()
        self.hits = 0
        self.misses = 0

    def _get_client(self) -> Optional[redis.Redis]:
        return get_redis_client()

    def _read(self, key: str) -> Optional[str]:
        client = self._get_client()
        if client is not None:
            try:
                return client.get(key)
            except redis.RedisError as e:
                logger.error(f"❌ Cache get error for {key}: {e}")
                return None

        with self._lock:
            entry = self._memory.get(key)
            if entry is None:
                return None
            expires_at, raw = entry
            if time.time() >= expires_at:
                del self._memory[key]
                return None
            return raw

    def get(self, key: str) -> Optional[Any]:
        raw = self._read(key)
        if raw is None:
            self.misses += 1
            return None
        self.hits += 1
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: int = DEFAULT_TTL_SECONDS) -> bool:
        """Set value in cache with TTL (default 30 seconds)"""
        serialized = json.dumps(value, default=str)
        client = self._get_client()
        if client is not None:
            try:
                client.setex(key, ttl, serialized)
                return True
            except redis.RedisError as e:
                logger.error(f"❌ Cache set error for {key}: {e}")
                return False

        with self._lock:
            self._memory[key] = (time.time() + ttl, serialized)
        return True

    def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching a glob pattern (e.g. 'services:*')"""
        client = self._get_client()
        if client is not None:
            try:
                keys = list(client.scan_iter(match=pattern))
                return client.delete(*keys) if keys else 0
            except redis.RedisError as e:
                logger.error(f"❌ Cache delete pattern error for {pattern}: {e}")
                return 0

        with self._lock:
            keys = [k for k in self._memory if fnmatch.fnmatchcase(k, pattern)]
            for k in keys:
                del self._memory[k]
        if keys:
            logger.debug(f"Cache DELETE pattern: {pattern} ({len(keys)} keys)")
        return len(keys)

    def get_or_fetch(self, key: str, fetch: Callable[[], Any], ttl: int = DEFAULT_TTL_SECONDS) -> Any:
        cached_value = self.get(key)
        if cached_value is not None:
            return cached_value
        value = fetch()
        if value is not None:
            self.set(key, value, ttl)
        return value

    def clear(self) -> None:
        with self._lock:
            self._memory.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> dict:
        total = self.hits + self.misses
        return {
            "backend": "redis" if self._get_client() is not None else "memory",
            "entries": len(self._memory),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hits / total * 100, 2) if total else 0.0,
        }


# Global cache instance
cache = Cache()


def build_listing_key(prefix: str, **filters) -> str:
    """Stable cache key for a filtered listing query"""
    parts = [f"{k}={filters[k]}" for k in sorted(filters) if filters[k] is not None]
    return f"{prefix}:" + "&".join(parts)


def invalidate_service_listings() -> int:
    return cache.delete_pattern("services:*")


def invalidate_business_listings() -> int:
    return cache.delete_pattern("businesses:*")
