"""
Cache registry for mapping tables and dialect metadata lookups.

Uses cachetools LRUCache (no expiry) or TTLCache (with expiry).
"""
import functools
import logging
import threading

import cachetools

logger = logging.getLogger(__name__)


class Cache:
    """Cache manager for the resultset package.

    Thread-safe singleton holding named caches.
    """

    _instance = None
    _caches: dict[str, cachetools.Cache] = {}
    _lock = threading.RLock()

    @classmethod
    def get_instance(cls) -> 'Cache':
        """Get singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def get_cache(self, name: str, maxsize: int = 100, ttl: int | None = None) -> cachetools.Cache:
        """Get or create a named cache.

        Args:
            name: Name of the cache
            maxsize: Maximum cache size
            ttl: Time-to-live in seconds; None for an LRU cache without expiry

        Returns
            LRUCache or TTLCache instance
        """
        if name not in self._caches:
            with self._lock:
                if name not in self._caches:
                    if ttl is None:
                        self._caches[name] = cachetools.LRUCache(maxsize=maxsize)
                    else:
                        self._caches[name] = cachetools.TTLCache(maxsize=maxsize, ttl=ttl)
        return self._caches[name]

    def clear_all(self) -> None:
        """Clear all managed caches."""
        with self._lock:
            for cache in self._caches.values():
                cache.clear()

    def clear_cache(self, name: str) -> None:
        """Clear a specific cache by name."""
        with self._lock:
            if name in self._caches:
                self._caches[name].clear()


def cacheable_strategy(cache_name: str, ttl: int = 300, maxsize: int = 50):
    """Decorator for caching strategy lookups keyed by connection engine and argument.

    The wrapped method takes ``(self, cn, key)``; results are cached per
    strategy class, engine, and key. Pass ``bypass_cache=True`` to skip
    the cache.
    """
    def decorator(method):
        @functools.wraps(method)
        def wrapper(self, cn, key, bypass_cache=False):
            if bypass_cache:
                logger.debug(f'Bypassing cache for {method.__name__}({key!r})')
                return method(self, cn, key)

            specific_cache_name = f'{cache_name}_{self.__class__.__name__}_{method.__name__}'
            cache = Cache.get_instance().get_cache(specific_cache_name, maxsize=maxsize, ttl=ttl)
            cache_key = (id(getattr(cn, 'engine', cn)), key)

            if cache_key in cache:
                logger.debug(f'Cache hit for {method.__name__}({key!r})')
                return cache[cache_key]

            logger.debug(f'Cache miss for {method.__name__}({key!r})')
            result = method(self, cn, key)
            cache[cache_key] = result
            return result

        return wrapper
    return decorator
