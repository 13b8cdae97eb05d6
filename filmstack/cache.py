"""Single-flight cache for persistent lookups.

Populating a missing key runs the loader at most once at a time per key:
concurrent requesters of the same key wait for the first load and then read
its result. Distinct keys load independently.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from collections.abc import Callable, Hashable
from typing import Generic, NamedTuple, TypeVar

from .errors import InvalidArgumentError

logger = logging.getLogger(__name__)

V = TypeVar("V")


class CacheInfo(NamedTuple):
    """Cache statistics, in the spirit of ``functools.lru_cache``."""

    hits: int
    misses: int
    loads: int
    maxsize: int | None
    currsize: int


class SingleFlightCache(Generic[V]):
    """Mapping from key to loaded value with per-key load exclusion.

    Args:
        maxsize: Maximum number of entries. ``None`` (default) keeps every
            entry for the lifetime of the cache; otherwise the least recently
            used entry is evicted once the bound is exceeded.

    Raises:
        InvalidArgumentError: If maxsize is not positive.
    """

    def __init__(self, maxsize: int | None = None):
        if maxsize is not None and maxsize <= 0:
            raise InvalidArgumentError("maxsize must be a positive integer or None")
        self.maxsize = maxsize
        self._data: OrderedDict[Hashable, V] = OrderedDict()
        # key -> [lock, number of requesters holding or waiting on it]
        self._key_locks: dict[Hashable, list] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._loads = 0

    def _lookup(self, key: Hashable) -> V:
        with self._lock:
            value = self._data[key]
            if self.maxsize is not None:
                self._data.move_to_end(key)
            self._hits += 1
        return value

    def _acquire_entry(self, key: Hashable) -> list:
        with self._lock:
            entry = self._key_locks.get(key)
            if entry is None:
                entry = self._key_locks[key] = [threading.Lock(), 0]
            entry[1] += 1
        return entry

    def _release_entry(self, key: Hashable, entry: list) -> None:
        with self._lock:
            entry[1] -= 1
            if entry[1] == 0 and self._key_locks.get(key) is entry:
                del self._key_locks[key]

    def get_or_load(self, key: Hashable, loader: Callable[[], V]) -> V:
        """Return the cached value for key, loading it on first request.

        Exceptions raised by ``loader`` propagate and nothing is cached, so
        a later request retries the load. The per-key lock lives only while
        some requester holds or waits on it.
        """
        try:
            return self._lookup(key)
        except KeyError:
            pass

        entry = self._acquire_entry(key)
        try:
            with entry[0]:
                # another requester may have finished the load while we waited
                try:
                    return self._lookup(key)
                except KeyError:
                    pass

                with self._lock:
                    self._misses += 1
                value = loader()
                with self._lock:
                    self._data[key] = value
                    self._loads += 1
                    if self.maxsize is not None:
                        while len(self._data) > self.maxsize:
                            evicted, _ = self._data.popitem(last=False)
                            logger.debug("Evicted %r from cache", evicted)
                logger.debug("Loaded %r into cache", key)
                return value
        finally:
            self._release_entry(key, entry)

    def invalidate(self, key: Hashable | None = None) -> None:
        """Drop one key, or every key when ``key`` is None."""
        with self._lock:
            if key is None:
                self._data.clear()
            else:
                self._data.pop(key, None)

    def info(self) -> CacheInfo:
        with self._lock:
            return CacheInfo(
                self._hits, self._misses, self._loads, self.maxsize, len(self._data)
            )

    def __contains__(self, key: Hashable) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)
