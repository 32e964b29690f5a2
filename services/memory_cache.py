"""
Memory Cache Module

This module provides a bounded in-process key/value cache with per-entry
time-to-live, oldest-first eviction when full, and hit/miss statistics.
It also holds the cache key generators, the TTL table and the invalidation
helpers used by the cached API layer.

The cache never raises to its callers: malformed input and internal errors
are logged and the operation degrades to a miss or a no-op.
"""

import dataclasses
from typing import Any, Callable, Dict, List, Optional

from config import settings
from data.models import CacheEntry, CacheStats
from utils.exceptions import CacheError
from utils.helpers import now_millis
from utils.logger import get_logger

logger = get_logger(__name__)


class MemoryCache:
    """
    Bounded TTL cache.

    Expired entries are purged lazily: all of them on every ``set``, and
    individually when ``get`` finds one. ``size`` counts entries that have
    expired but not been purged yet.

    Args:
        max_size: Maximum number of entries held at once.
        clock: Returns the current time in milliseconds. Defaults to wall time.
    """

    def __init__(self, max_size: Optional[int] = None, clock: Optional[Callable[[], int]] = None):
        max_size = settings.CACHE_MAX_SIZE if max_size is None else max_size
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self.max_size = max_size
        self._clock = clock or now_millis
        self._entries: Dict[str, CacheEntry] = {}
        self._stats = CacheStats()

    def set(self, key: str, data: Any, ttl: int) -> None:
        """
        Store data under key for ttl milliseconds.

        Purges expired entries first; if the cache is still full, the entry
        with the oldest timestamp is evicted before inserting.
        """
        try:
            self._validate_key(key)
            if isinstance(ttl, bool) or not isinstance(ttl, (int, float)) or ttl < 0:
                raise CacheError(f"Invalid TTL for {key!r}: {ttl!r}")

            self._cleanup()

            if len(self._entries) >= self.max_size:
                self._evict_oldest()

            self._entries[key] = CacheEntry(data=data, timestamp=self._clock(), ttl=ttl)
            self._stats.sets += 1
            logger.debug(f"Cache SET: {key} (TTL: {ttl}ms)")
        except Exception as e:
            logger.error(f"Cache set error: {e}")

    def get(self, key: str) -> Any:
        """
        Return the cached data for key, or None if absent or expired.
        """
        try:
            self._validate_key(key)
            entry = self._entries.get(key)

            if entry is None:
                self._stats.misses += 1
                logger.debug(f"Cache MISS: {key}")
                return None

            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._stats.misses += 1
                logger.debug(f"Cache EXPIRED: {key}")
                return None

            self._stats.hits += 1
            logger.debug(f"Cache HIT: {key}")
            return entry.data
        except Exception as e:
            logger.error(f"Cache get error: {e}")
            self._stats.misses += 1
            return None

    def delete(self, key: str) -> bool:
        """
        Remove an entry.

        Returns:
            bool: True if an entry was removed.
        """
        try:
            if self._entries.pop(key, None) is None:
                return False
            self._stats.deletes += 1
            logger.debug(f"Cache DELETE: {key}")
            return True
        except Exception as e:
            logger.error(f"Cache delete error: {e}")
            return False

    def clear(self) -> None:
        """Remove every entry."""
        try:
            self._entries.clear()
            self._stats.clears += 1
            logger.debug("Cache CLEARED")
        except Exception as e:
            logger.error(f"Cache clear error: {e}")

    def size(self) -> int:
        return len(self._entries)

    def get_stats(self) -> CacheStats:
        """Return a copy of the operation counters."""
        return dataclasses.replace(self._stats)

    def get_hit_rate(self) -> float:
        """Hits as a percentage of all reads, or 0 before the first read."""
        total = self._stats.hits + self._stats.misses
        return (self._stats.hits / total) * 100 if total > 0 else 0

    def get_keys(self) -> List[str]:
        """All keys currently held (for debugging)."""
        return list(self._entries)

    def get_contents(self) -> Dict[str, Dict[str, Any]]:
        """Per-entry data and timing metadata (for debugging)."""
        now = self._clock()
        return {
            key: {
                "data": entry.data,
                "timestamp": entry.timestamp,
                "ttl": entry.ttl,
                "expires_at": entry.expires_at,
                "age": now - entry.timestamp,
            }
            for key, entry in self._entries.items()
        }

    @staticmethod
    def _validate_key(key: str) -> None:
        if not isinstance(key, str):
            raise CacheError(f"Cache keys must be strings, got {type(key).__name__}")

    def _cleanup(self) -> None:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]

    def _evict_oldest(self) -> None:
        if not self._entries:
            return
        # min() keeps the first key in insertion order on timestamp ties
        oldest_key = min(self._entries, key=lambda k: self._entries[k].timestamp)
        del self._entries[oldest_key]
        logger.debug(f"Cache EVICTED: {oldest_key}")


class CacheTTL:
    """Time-to-live per kind of cached record, in milliseconds."""
    USER_PROFILE = settings.CACHE_TTL_USER_PROFILE
    USER_PARTIES = settings.CACHE_TTL_USER_PARTIES
    PARTY_DETAILS = settings.CACHE_TTL_PARTY_DETAILS
    USER_FRIENDS = settings.CACHE_TTL_USER_FRIENDS
    USER_PREFERENCES = settings.CACHE_TTL_USER_PREFERENCES


class CacheKeys:
    """Cache key generators."""

    @staticmethod
    def user_profile(user_id: str) -> str:
        return f"user-profile-{user_id}"

    @staticmethod
    def user_parties(user_id: str) -> str:
        return f"user-parties-{user_id}"

    @staticmethod
    def party_details(party_id: str) -> str:
        return f"party-details-{party_id}"

    @staticmethod
    def user_friends(user_id: str) -> str:
        return f"user-friends-{user_id}"

    @staticmethod
    def user_preferences(user_id: str) -> str:
        return f"user-preferences-{user_id}"


class CacheInvalidation:
    """Invalidation helpers bound to one cache instance."""

    def __init__(self, cache: MemoryCache):
        self.cache = cache

    def clear_user_profile(self, user_id: str) -> None:
        self.cache.delete(CacheKeys.user_profile(user_id))

    def clear_user_parties(self, user_id: str) -> None:
        self.cache.delete(CacheKeys.user_parties(user_id))

    def clear_party_details(self, party_id: str) -> None:
        self.cache.delete(CacheKeys.party_details(party_id))

    def clear_user_friends(self, user_id: str) -> None:
        self.cache.delete(CacheKeys.user_friends(user_id))

    def clear_user_preferences(self, user_id: str) -> None:
        self.cache.delete(CacheKeys.user_preferences(user_id))

    def clear_all_user_data(self, user_id: str) -> None:
        """Drop every per-user entry (profile, parties, friends, preferences)."""
        self.clear_user_profile(user_id)
        self.clear_user_parties(user_id)
        self.clear_user_friends(user_id)
        self.clear_user_preferences(user_id)

    def clear_all(self) -> None:
        self.cache.clear()
