"""
Redis-backed JSON cache for upstream lookups
A missing or failing Redis reads as a cache miss and never fails the request
"""

import json
import logging
from typing import Any, Callable, Optional

from .redis_client import get_redis_client

logger = logging.getLogger(__name__)


class JsonCache:
    """JSON values stored under ``<namespace>:<part>:<part>...`` with a fixed TTL"""

    def __init__(self, namespace: str, ttl: int, client_factory: Callable = get_redis_client):
        self.namespace = namespace
        self.ttl = ttl
        self._client_factory = client_factory
        self._redis = None

    def key(self, *parts) -> str:
        return ":".join([self.namespace, *(str(part) for part in parts)])

    def _connection(self):
        # Retried on every call until Redis comes up
        if self._redis is None:
            try:
                self._redis = self._client_factory()
            except Exception as e:
                logger.warning(f"⚠️ Redis cache unavailable for {self.namespace}: {e}")
        return self._redis

    def fetch(self, *parts) -> Optional[Any]:
        redis = self._connection()
        if redis is None:
            return None

        key = self.key(*parts)
        try:
            raw = redis.get(key)
        except Exception as e:
            logger.error(f"❌ Cache read failed for {key}: {e}")
            return None

        if not raw:
            logger.debug(f"Cache miss: {key}")
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"⚠️ Dropping unreadable cache entry {key}")
            return None

    def store(self, value: Any, *parts) -> bool:
        redis = self._connection()
        if redis is None:
            return False

        key = self.key(*parts)
        try:
            redis.setex(key, self.ttl, json.dumps(value))
        except Exception as e:
            logger.error(f"❌ Cache write failed for {key}: {e}")
            return False
        logger.debug(f"Cached {key} for {self.ttl}s")
        return True
