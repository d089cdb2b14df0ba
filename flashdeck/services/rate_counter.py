"""
Per-client generation counter with a fixed expiry window
"""
import time
from typing import Dict, Optional, Tuple

import redis
import structlog

from flashdeck.config import settings

logger = structlog.get_logger()


class RateCounter:
    def __init__(self, redis_url: Optional[str] = None, limit: int = 10, window_seconds: int = 900):
        self.limit = limit
        self.window_seconds = window_seconds
        self.redis_client = None
        self._memory_counts: Dict[str, Tuple[int, float]] = {}
        if not redis_url:
            logger.info("Rate counter using in-memory store")
            return
        try:
            self.redis_client = redis.from_url(redis_url, decode_responses=True)
            # Test connection
            self.redis_client.ping()
            logger.info("Rate counter connected to Redis")
        except Exception as e:
            logger.warning(f"Redis not available, using in-memory counter: {e}")
            self.redis_client = None

    @staticmethod
    def key_for(client_id: str) -> str:
        return f"rate_limit:{client_id}"

    def _memory_get(self, key: str) -> int:
        entry = self._memory_counts.get(key)
        if entry is None:
            return 0
        count, expires_at = entry
        if expires_at <= time.monotonic():
            del self._memory_counts[key]
            return 0
        return count

    def get(self, client_id: str) -> int:
        """Current count in the window; 0 on any backend error."""
        key = self.key_for(client_id)
        try:
            if self.redis_client:
                value = self.redis_client.get(key)
                return int(value) if value else 0
            return self._memory_get(key)
        except Exception as e:
            logger.error(f"Rate counter get error for key {key}: {e}")
            return 0

    def is_limited(self, client_id: str) -> bool:
        return self.get(client_id) >= self.limit

    def increment(self, client_id: str) -> int:
        """Count one more generation; the window restarts on each increment."""
        key = self.key_for(client_id)
        try:
            if self.redis_client:
                pipe = self.redis_client.pipeline()
                pipe.incr(key)
                pipe.expire(key, self.window_seconds)
                count, _ = pipe.execute()
                return int(count)
            count = self._memory_get(key) + 1
            self._memory_counts[key] = (count, time.monotonic() + self.window_seconds)
            return count
        except Exception as e:
            logger.error(f"Rate counter increment error for key {key}: {e}")
            return 0

    def reset(self, client_id: str) -> bool:
        key = self.key_for(client_id)
        try:
            if self.redis_client:
                return bool(self.redis_client.delete(key))
            return self._memory_counts.pop(key, None) is not None
        except Exception as e:
            logger.error(f"Rate counter reset error for key {key}: {e}")
            return False


# Global counter instance
rate_counter = RateCounter(
    redis_url=settings.REDIS_URL,
    limit=settings.GENERATION_QUOTA,
    window_seconds=settings.GENERATION_WINDOW_SECONDS,
)
