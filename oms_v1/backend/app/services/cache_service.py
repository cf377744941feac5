"""
Redis-backed response cache.

Values are stored as JSON. A missing or unreachable Redis server never fails
a request: reads degrade to a miss and writes/invalidations are logged and
skipped.
"""
from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

import redis

logger = logging.getLogger(__name__)


class CacheService:
    def __init__(self, client: redis.Redis | None = None, key_prefix: str = "") -> None:
        self.client = client
        self.key_prefix = key_prefix

    def init_app(self, app, client: redis.Redis | None = None) -> None:
        self.key_prefix = app.config.get("CACHE_KEY_PREFIX", "")
        if client is not None:
            self.client = client
        else:
            url = app.config.get("REDIS_URL")
            self.client = redis.Redis.from_url(url, decode_responses=True) if url else None
        app.extensions["oms_cache"] = self
        if self.client is None:
            logger.info("Response cache disabled: REDIS_URL is not configured")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def _key(self, key: str) -> str:
        if not self.key_prefix:
            return key
        return f"{self.key_prefix}:{key}"

    def _strip_prefix(self, key: str) -> str:
        prefix = f"{self.key_prefix}:" if self.key_prefix else ""
        return key[len(prefix):] if prefix and key.startswith(prefix) else key

    def get(self, key: str) -> Any | None:
        if not self.enabled:
            return None
        try:
            raw = self.client.get(self._key(key))
        except redis.RedisError as exc:
            logger.warning(f"Redis GET failed for {key}: {exc}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Discarding undecodable cache entry {key}")
            return None

    def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        if not self.enabled:
            return False
        try:
            serialized = json.dumps(value, default=str)
            if ttl:
                self.client.setex(self._key(key), ttl, serialized)
            else:
                self.client.set(self._key(key), serialized)
        except (redis.RedisError, TypeError, ValueError) as exc:
            logger.error(f"Redis SET failed for {key}: {exc}")
            return False
        return True

    def delete(self, key: str) -> bool:
        if not self.enabled:
            return False
        try:
            return bool(self.client.delete(self._key(key)))
        except redis.RedisError as exc:
            logger.error(f"Redis DEL failed for {key}: {exc}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern. Returns the number deleted."""
        if not self.enabled:
            return 0
        try:
            keys = list(self.client.scan_iter(match=self._key(pattern), count=100))
            if not keys:
                return 0
            self.client.delete(*keys)
        except redis.RedisError as exc:
            logger.error(f"Redis DEL pattern failed for {pattern}: {exc}")
            return 0
        return len(keys)

    def exists(self, key: str) -> bool:
        if not self.enabled:
            return False
        try:
            return self.client.exists(self._key(key)) == 1
        except redis.RedisError as exc:
            logger.error(f"Redis EXISTS failed for {key}: {exc}")
            return False

    def get_or_set(self, key: str, fetch: Callable[[], Any], ttl: int = 300) -> Any:
        cached = self.get(key)
        if cached is not None:
            logger.debug(f"Cache HIT {key}")
            return cached

        logger.debug(f"Cache MISS {key}")
        value = fetch()
        self.set(key, value, ttl)
        return value

    def invalidate(self, pattern: str) -> int:
        deleted = self.delete_pattern(pattern)
        if deleted:
            logger.info(f"Invalidated {deleted} cache keys matching pattern: {pattern}")
        return deleted

    def flush(self) -> int:
        """Remove every key under this service's prefix.

        Without a prefix the service cannot tell its keys from anyone else's,
        so nothing is removed.
        """
        if not self.key_prefix:
            if self.enabled:
                logger.warning("Refusing to flush cache: CACHE_KEY_PREFIX is not set")
            return 0
        return self.invalidate("*")

    def stats(self) -> dict[str, object] | None:
        if not self.enabled:
            return None
        try:
            keys = [self._strip_prefix(key) for key in self.client.scan_iter(match=self._key("*"), count=100)]
        except redis.RedisError as exc:
            logger.error(f"Redis STATS failed: {exc}")
            return {"connected": False, "keys": 0}
        return {"connected": True, "keys": len(keys), "prefix": self.key_prefix}
