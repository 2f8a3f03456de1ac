"""
Query cache — keyed cache of backend reads with prefix invalidation.

Keys are tuples such as ("me", "access-tokens") or ("countries", 3).
Invalidating ("me",) drops every key that starts with "me". The cache is
injected where it is needed; list pages refresh after a mutation because the
lifecycle controller's on-success event invalidates the affected prefixes.
"""

import logging
import threading

logger = logging.getLogger(__name__)


def _as_key(key) -> tuple:
    if isinstance(key, tuple):
        return key
    if isinstance(key, list):
        return tuple(key)
    return (key,)


class QueryCache:
    def __init__(self):
        self._entries = {}
        self._lock = threading.Lock()

    def get(self, key, fetch):
        """Return the cached value for ``key`` or fetch and store it."""
        key = _as_key(key)
        with self._lock:
            if key in self._entries:
                return self._entries[key]
        value = fetch()
        with self._lock:
            self._entries[key] = value
        return value

    def peek(self, key, default=None):
        with self._lock:
            return self._entries.get(_as_key(key), default)

    def invalidate(self, prefix) -> int:
        """Drop every entry whose key starts with ``prefix``.

        Returns:
            Number of entries dropped.
        """
        prefix = _as_key(prefix)
        with self._lock:
            stale = [k for k in self._entries if k[:len(prefix)] == prefix]
            for k in stale:
                del self._entries[k]
        if stale:
            logger.info("Invalidated %d cached quer%s under %s",
                        len(stale), 'y' if len(stale) == 1 else 'ies', prefix)
        return len(stale)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self):
        with self._lock:
            return len(self._entries)


def invalidator(cache: QueryCache, *keys):
    """Build an on-success observer that invalidates the given key prefixes."""
    def observer(event):
        for key in keys:
            cache.invalidate(key)
    return observer
