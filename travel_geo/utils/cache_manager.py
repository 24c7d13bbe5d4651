"""
Cache Manager Utility
====================

In-memory caching with TTL and LRU eviction, used to avoid repeating
geocoder lookups for the same destination.

Classes:
    CacheManager: Main caching interface
    CacheEntry: Internal cache entry with metadata
    CacheStats: Cache performance statistics

Author: Travel Geo Engine Team
"""

import logging
import time
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from config import config


@dataclass
class CacheEntry:
    """
    Internal cache entry with metadata

    Attributes:
        data (Any): Cached data
        timestamp (float): When entry was created (clock seconds)
        ttl (int): Time-to-live in seconds, <= 0 means no expiry
        access_count (int): Number of times accessed
    """
    data: Any
    timestamp: float
    ttl: int
    access_count: int = 0

    def is_expired(self, now: float) -> bool:
        """Check if cache entry has expired"""
        if self.ttl <= 0:
            return False
        return now - self.timestamp > self.ttl


@dataclass
class CacheStats:
    """Cache performance statistics"""
    hits: int = 0
    misses: int = 0
    sets: int = 0
    evictions: int = 0
    expired: int = 0

    def hit_rate(self) -> float:
        """Calculate cache hit rate"""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> Dict:
        """Convert stats to dictionary"""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "evictions": self.evictions,
            "expired": self.expired,
            "hit_rate": self.hit_rate()
        }


class CacheManager:
    """
    Thread-safe in-memory cache with LRU eviction and TTL support
    """

    def __init__(self, max_size: int = None, default_ttl: int = None,
                 clock: Callable[[], float] = time.time):
        """
        Initialize Cache Manager

        Args:
            max_size (int): Maximum number of cache entries (default from config)
            default_ttl (int): Default TTL in seconds (default from config)
            clock (Callable): Time source, injectable for tests
        """
        self.logger = logging.getLogger(__name__)

        self.max_size = max_size or config.CACHE_MAX_SIZE
        self.default_ttl = default_ttl if default_ttl is not None else config.CACHE_TTL
        self._clock = clock

        self._lock = threading.RLock()
        self._cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self.stats = CacheStats()

        self.logger.debug(f"Cache Manager initialized (max_size={self.max_size}, ttl={self.default_ttl})")

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache

        Args:
            key (str): Cache key

        Returns:
            Any: Cached value or None if not found/expired
        """
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self.stats.misses += 1
                return None

            if entry.is_expired(self._clock()):
                del self._cache[key]
                self.stats.misses += 1
                self.stats.expired += 1
                self.logger.debug(f"Cache expired: {key}")
                return None

            entry.access_count += 1
            self._cache.move_to_end(key)
            self.stats.hits += 1
            return entry.data

    def set(self, key: str, value: Any, ttl: int = None) -> None:
        """
        Set value in cache

        Args:
            key (str): Cache key
            value (Any): Value to cache
            ttl (int): Time-to-live in seconds (default: use default_ttl)
        """
        with self._lock:
            ttl = ttl if ttl is not None else self.default_ttl
            self._cache[key] = CacheEntry(data=value, timestamp=self._clock(), ttl=ttl)
            self._cache.move_to_end(key)

            while len(self._cache) > self.max_size:
                lru_key, _ = self._cache.popitem(last=False)
                self.stats.evictions += 1
                self.logger.debug(f"Evicted LRU entry: {lru_key}")

            self.stats.sets += 1

    def has_key(self, key: str) -> bool:
        """True if key exists and is not expired"""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return False
            if entry.is_expired(self._clock()):
                del self._cache[key]
                self.stats.expired += 1
                return False
            return True

    def delete(self, key: str) -> bool:
        """Delete key from cache"""
        with self._lock:
            return self._cache.pop(key, None) is not None

    def clear(self) -> None:
        """Clear all cache entries"""
        with self._lock:
            self._cache.clear()
            self.stats = CacheStats()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
