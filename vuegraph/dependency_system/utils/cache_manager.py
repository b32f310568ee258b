"""
Cache management for parsed project graphs.
Named, TTL-based caches with LRU eviction, plus a
``cached`` decorator that memoizes a function on a caller-supplied key.
"""

from __future__ import annotations

import functools
import hashlib
import json
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, TypeVar, cast

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# Configuration
DEFAULT_MAX_SIZE = 256  # Default max items per cache
DEFAULT_TTL = 600
CACHE_SIZES = {
    "project_graphs": 64,  # Whole graphs are large; keep few
    "default": DEFAULT_MAX_SIZE,
}
CLEANUP_INTERVAL = 60


@dataclass
class CacheMetrics:
    """Cache performance counters."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate hit rate percentage."""
        total = self.hits + self.misses
        return (self.hits / total * 100) if total > 0 else 0.0


class Cache:
    """Single named cache with TTL expiry and least-recently-used eviction."""

    def __init__(self, name: str, ttl: int = DEFAULT_TTL, max_size: Optional[int] = None):
        self.name = name
        # key -> (value, last_access_time, expiry); ordered oldest access first
        self.data: "OrderedDict[str, Tuple[Any, float, Optional[float]]]" = OrderedDict()
        self.metrics = CacheMetrics()
        self.creation_time = time.time()
        self.default_ttl = ttl
        self.max_size = max_size or CACHE_SIZES.get(name, CACHE_SIZES["default"])
        self._lock = threading.RLock()
        logger.debug(f"Cache '{name}' initialized: max_size={self.max_size}, ttl={ttl}s")

    def get(self, key: str) -> Any:
        with self._lock:
            if key not in self.data:
                self.metrics.misses += 1
                return None

            value, _access_time, expiry = self.data[key]
            if expiry and time.time() > expiry:
                self._remove_key(key)
                self.metrics.misses += 1
                return None

            self.data[key] = (value, time.time(), expiry)
            self.data.move_to_end(key)
            self.metrics.hits += 1
            return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Stores ``value``. ``ttl=0`` means no expiry; None uses the cache default."""
        with self._lock:
            if key not in self.data and len(self.data) >= self.max_size:
                self._evict_lru()
            effective_ttl = self.default_ttl if ttl is None else ttl
            expiry = time.time() + effective_ttl if effective_ttl != 0 else None
            self.data[key] = (value, time.time(), expiry)
            self.data.move_to_end(key)

    def _evict_lru(self) -> None:
        if not self.data:
            return
        lru_key = next(iter(self.data))
        self._remove_key(lru_key)
        self.metrics.evictions += 1

    def _remove_key(self, key: str) -> None:
        self.data.pop(key, None)

    def cleanup_expired(self) -> None:
        """Remove all expired entries."""
        with self._lock:
            now = time.time()
            expired = [k for k, (_, _, expiry) in self.data.items() if expiry and now > expiry]
            for key in expired:
                self._remove_key(key)
            if expired:
                logger.debug(f"Cache '{self.name}': Cleaned up {len(expired)} expired entries.")

    def is_expired(self) -> bool:
        return (time.time() - self.creation_time) > self.default_ttl and not self.data

    def clear(self) -> None:
        with self._lock:
            self.data.clear()

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            total_items = len(self.data)
            return {
                "name": self.name,
                "total_items": total_items,
                "max_size": self.max_size,
                "utilization": (total_items / self.max_size * 100) if self.max_size > 0 else 0,
                "hit_rate": self.metrics.hit_rate,
                "hits": self.metrics.hits,
                "misses": self.metrics.misses,
                "evictions": self.metrics.evictions,
            }


class CacheManager:
    """Manages multiple named caches."""

    def __init__(self):
        self.caches: Dict[str, Cache] = {}
        self._last_cleanup_time = 0.0  # Throttling for cleanup()

    def get_cache(self, cache_name: str, ttl: int = DEFAULT_TTL) -> Cache:
        """Retrieve or create a cache by name."""
        if cache_name not in self.caches or self.caches[cache_name].is_expired():
            self.caches[cache_name] = Cache(cache_name, ttl)
            logger.debug(f"Spun up new cache: {cache_name} with TTL {ttl}s")
        return self.caches[cache_name]

    def configure(self, cache_name: str, ttl: int = DEFAULT_TTL, max_size: Optional[int] = None) -> Cache:
        """Replaces ``cache_name`` with a fresh cache when its settings differ."""
        current = self.caches.get(cache_name)
        wanted_size = max_size or CACHE_SIZES.get(cache_name, CACHE_SIZES["default"])
        if current is None or current.default_ttl != ttl or current.max_size != wanted_size:
            self.caches[cache_name] = Cache(cache_name, ttl, wanted_size)
        return self.caches[cache_name]

    def cleanup(self, force: bool = False) -> None:
        """Remove expired caches and items, at most once per CLEANUP_INTERVAL unless forced."""
        now = time.time()
        if not force and (now - self._last_cleanup_time < CLEANUP_INTERVAL):
            return
        self._last_cleanup_time = now
        for name, cache in list(self.caches.items()):
            cache.cleanup_expired()
            if cache.is_expired():
                del self.caches[name]
                logger.debug(f"Spun down expired cache: {name}")

    def clear_all(self) -> None:
        for cache in self.caches.values():
            cache.clear()
        self.caches.clear()


cache_manager = CacheManager()


def snapshot_key(files: Mapping[str, str], entry_file: str, extra: Any = None) -> str:
    """Stable digest of a project snapshot (order of ``files`` does not matter)."""
    digest = hashlib.sha256()
    digest.update(entry_file.encode("utf8"))
    for path in sorted(files):
        digest.update(b"\0")
        digest.update(path.encode("utf8"))
        digest.update(b"\0")
        digest.update(files[path].encode("utf8"))
    if extra is not None:
        digest.update(b"\0")
        digest.update(json.dumps(extra, sort_keys=True, default=str).encode("utf8"))
    return f"snapshot:{digest.hexdigest()}"


def clear_all_caches() -> None:
    """Clear all caches in the manager."""
    cache_manager.clear_all()


def get_cache_stats(cache_name: str) -> Dict[str, Any]:
    return cache_manager.get_cache(cache_name).get_stats()


def cached(
    cache_name: str,
    key_func: Optional[Callable[..., str]] = None,
    ttl: Optional[int] = None,
):
    """
    Decorator for caching function results.

    Args:
        cache_name: Name of the cache to use.
        key_func: Optional function to generate cache key from args/kwargs.
        ttl: Time-to-live in seconds. None uses the cache's default, 0 means no expiry.

    Results equal to None are never cached; exceptions propagate uncached.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if key_func is not None:
                key = key_func(*args, **kwargs)
            else:
                key_parts = [str(a) for a in args] + [f"{k}={v}" for k, v in sorted(kwargs.items())]
                key = f"{func.__name__}::{'|'.join(key_parts)}"

            cache = cache_manager.get_cache(cache_name, ttl if ttl is not None else DEFAULT_TTL)
            cached_val = cache.get(key)
            if cached_val is not None:
                return cached_val

            result = func(*args, **kwargs)
            if result is not None:
                cache.set(key, result, ttl=ttl)
            # Throttled cleanup
            cache_manager.cleanup()
            return result

        return cast(F, wrapper)

    return decorator
