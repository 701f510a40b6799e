"""Redis-backed statement cache.

Keys embed a generation number stored in Redis; ``invalidate`` bumps it, so
every previously cached statement and series becomes unreachable at once and
expires on its own TTL. When Redis is unavailable the cache disables itself
and every lookup is a miss.
"""
import json
import logging
from typing import Any

import redis

from app import metrics

logger = logging.getLogger(__name__)
_cache_metrics = {"hits": 0, "misses": 0}

GENERATION_KEY = "dre:cache:generation"


class StatementCache:
    def __init__(self, client: redis.Redis | None = None, ttl: int = 300, prefix: str = "dre"):
        self._client = client
        self._resolved = client is not None
        self.ttl = ttl
        self.prefix = prefix

    def _get_client(self) -> redis.Redis | None:
        if self._resolved:
            return self._client
        self._resolved = True
        try:
            from app.db.redis_client import get_redis_client
            self._client = get_redis_client()
        except Exception:  # noqa: BLE001
            logger.warning("Statement cache disabled (Redis unavailable)")
            self._client = None
        return self._client

    def _generation(self, client: redis.Redis) -> str:
        return client.get(GENERATION_KEY) or "0"

    def make_key(self, kind: str, *parts: Any) -> str | None:
        """Key for ``kind`` ("statement"/"series") and its period parts."""
        client = self._get_client()
        if not client:
            return None
        try:
            generation = self._generation(client)
        except Exception:  # noqa: BLE001
            logger.debug("Failed to read cache generation")
            return None
        suffix = ":".join("-" if p is None else str(p) for p in parts)
        return f"{self.prefix}:{kind}:g{generation}:{suffix}"

    def get(self, key: str | None) -> Any | None:
        client = self._get_client()
        if not client or key is None:
            return None
        try:
            raw = client.get(key)
        except Exception:  # noqa: BLE001
            logger.debug("Failed to get cache key=%s", key)
            return None
        if raw is None:
            _cache_metrics["misses"] += 1
            metrics.cache_miss()
            return None
        try:
            value = json.loads(raw)
        except ValueError:
            return None
        _cache_metrics["hits"] += 1
        metrics.cache_hit()
        return value

    def set(self, key: str | None, value: Any) -> None:
        client = self._get_client()
        if not client or key is None:
            return
        try:
            client.setex(key, self.ttl, json.dumps(value, default=str))
        except Exception:  # noqa: BLE001
            logger.debug("Failed to set cache key=%s", key)

    def invalidate(self) -> None:
        """Drop every cached statement/series (called on ledger or adjustment writes)."""
        client = self._get_client()
        if not client:
            return
        try:
            generation = client.incr(GENERATION_KEY)
            logger.info("Statement cache invalidated generation=%s", generation)
        except Exception:  # noqa: BLE001
            logger.warning("Failed to invalidate statement cache")


def cache_stats() -> dict[str, int]:
    """Return basic cache hit/miss counters for instrumentation."""
    return dict(_cache_metrics)
