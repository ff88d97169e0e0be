"""
Redis caching utilities for slot-search results
Cache failures never fail a request: every operation degrades to a miss
"""
import hashlib
import json
import logging
import os
from typing import Any, Callable, Optional

import redis

from .config import CACHE_ENABLED, REDIS_HOST, REDIS_PASSWORD, REDIS_PORT, REDIS_SSL, REDIS_URL

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None


def _mask_redis_url(url: str) -> str:
    if "@" not in url:
        return "****"
    credentials, location = url.rsplit("@", 1)
    return f"{credentials.split(':')[0]}:****@{location}"


def get_redis_client() -> redis.Redis:
    """
    Get or create Redis client
    Supports both a REDIS_URL (managed Redis) and individual host settings
    """
    global redis_client

    if redis_client is None:
        options = {
            "decode_responses": True,
            "socket_connect_timeout": int(os.getenv("REDIS_CONNECT_TIMEOUT", "5")),
            "socket_timeout": 30,
            "retry_on_timeout": True,
            "health_check_interval": 30,
            "max_connections": 20,
        }

        if REDIS_URL:
            logger.info(f"📡 Using Redis URL connection: {_mask_redis_url(REDIS_URL)}")
            client = redis.from_url(REDIS_URL, **options)
        else:
            logger.info(f"📡 Using Redis at {REDIS_HOST}:{REDIS_PORT} (ssl={REDIS_SSL})")
            client = redis.Redis(
                host=REDIS_HOST,
                port=REDIS_PORT,
                password=REDIS_PASSWORD,
                db=int(os.getenv("REDIS_DB", "0")),
                ssl=REDIS_SSL,
                **options,
            )

        try:
            client.ping()
        except Exception as e:
            logger.error(f"❌ Failed to connect to Redis: {str(e)}")
            raise
        redis_client = client
        logger.info("Redis connected successfully")

    return redis_client


class Cache:
    """Redis cache wrapper with automatic JSON serialization"""

    def __init__(self, enabled: bool = CACHE_ENABLED):
        self.enabled = enabled
        self.redis_client = None

    def _get_client(self):
        """Lazy load Redis client"""
        if not self.enabled:
            return None
        if self.redis_client is None:
            try:
                self.redis_client = get_redis_client()
            except Exception as e:
                logger.warning(f"⚠️ Redis cache unavailable: {e}")
                return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"❌ Cache MISS: {key}")
            return None
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """Set value in cache with TTL in seconds"""
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(value))
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        client = self._get_client()
        if not client:
            return False

        try:
            client.delete(key)
            logger.debug(f"✅ Cache DELETE: {key}")
            return True
        except Exception as e:
            logger.error(f"❌ Cache delete error for {key}: {e}")
            return False

    def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Any],
        ttl: int = 300,
        should_cache: Optional[Callable[[Any], bool]] = None,
    ) -> Any:
        """
        Return the cached value for key, or compute, store and return it.

        should_cache lets the caller refuse to store a computed value
        (e.g. a partial result).
        """
        cached_value = self.get(key)
        if cached_value is not None:
            return cached_value

        result = compute()
        if result is not None and (should_cache is None or should_cache(result)):
            self.set(key, result, ttl)
        return result


# Global cache instance
cache = Cache()


def build_slot_search_key(
    participant_emails: list[str],
    range_start: str,
    range_end: str,
    duration_minutes: int,
    tz_name: str,
) -> str:
    """Cache key for a slot search; participant order is part of the request"""
    raw = "|".join(
        [",".join(participant_emails), range_start, range_end, str(duration_minutes), tz_name]
    )
    digest = hashlib.sha256(raw.encode()).hexdigest()[:32]
    return f"slots:{digest}"


def get_cache_stats() -> dict:
    """Get cache statistics"""
    client = cache._get_client()
    if not client:
        return {"available": False}

    try:
        info = client.info()
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "available": True,
            "version": info.get("redis_version", "unknown"),
            "used_memory": info.get("used_memory_human"),
            "connected_clients": info.get("connected_clients"),
            "hit_rate": (hits / max(hits + misses, 1)) * 100,
        }
    except Exception as e:
        logger.error(f"❌ Failed to get cache stats: {e}")
        return {"available": False, "error": str(e)}
