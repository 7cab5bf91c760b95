# ============================================================================
# cache/manager.py - Process-local TTL read cache
# ============================================================================

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Union

from edu_app.config import config

logger = logging.getLogger(__name__)

KeySelector = Union[Iterable[str], Callable[[str], bool]]


def cache_key(*parts: Any) -> str:
    """Operation name followed by its scoping params, e.g. subjects:CBSE:10"""
    return ":".join(str(part) for part in parts)


class CacheManager:
    """Simple in-memory cache with TTL (single process, no persistence)"""

    def __init__(self, ttl_seconds: int = 300, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._cache: Dict[str, Tuple[Any, float]] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: str) -> bool:
        return key in self._cache

    async def get(self, key: str) -> Optional[Any]:
        """Get cached value if not expired; stale entries are evicted here"""
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                logger.debug("cache miss: %s", key)
                return None

            value, stored_at = entry
            if self._clock() - stored_at < self.ttl_seconds:
                logger.debug("cache hit: %s", key)
                return value

            del self._cache[key]
            logger.debug("cache expired: %s", key)
            return None

    async def set(self, key: str, value: Any):
        """Set cached value, stamped with the current time"""
        async with self._lock:
            self._cache[key] = (value, self._clock())

    async def invalidate(self, keys: KeySelector) -> int:
        """
        Drop entries by exact keys or by a key predicate

        Returns:
            Number of entries removed
        """
        async with self._lock:
            if callable(keys):
                doomed = [key for key in self._cache if keys(key)]
            else:
                doomed = [key for key in keys if key in self._cache]
            for key in doomed:
                del self._cache[key]
        return len(doomed)

    async def clear(self):
        """Clear all cache"""
        async with self._lock:
            count = len(self._cache)
            self._cache.clear()
        logger.info("read cache cleared (%d entries)", count)


# Global cache instance
cache = CacheManager(ttl_seconds=config.CACHE_TTL_SECONDS)
