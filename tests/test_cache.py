"""Tests for the single-flight cache."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from filmstack.cache import SingleFlightCache
from filmstack.errors import InvalidArgumentError


class TestSingleFlightCache:
    """Test loading, statistics and eviction."""

    def test_loads_once(self):
        cache = SingleFlightCache()
        calls = []

        def loader():
            calls.append(1)
            return object()

        first = cache.get_or_load("a", loader)
        second = cache.get_or_load("a", loader)
        assert first is second
        assert len(calls) == 1
        info = cache.info()
        assert info.loads == 1
        assert info.hits == 1
        assert info.currsize == 1

    def test_concurrent_requests_single_load(self):
        """Requesters racing on an uncached key share one load."""
        cache = SingleFlightCache()
        calls = []
        barrier = threading.Barrier(8)

        def loader():
            calls.append(1)
            time.sleep(0.05)
            return ("value",)

        def request():
            barrier.wait()
            return cache.get_or_load("key", loader)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: request(), range(8)))

        assert len(calls) == 1
        assert all(r is results[0] for r in results)

    def test_distinct_keys_load_independently(self):
        cache = SingleFlightCache()
        assert cache.get_or_load("a", lambda: 1) == 1
        assert cache.get_or_load("b", lambda: 2) == 2
        assert len(cache) == 2
        assert "a" in cache and "b" in cache

    def test_failed_load_not_cached(self):
        cache = SingleFlightCache()

        def failing():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            cache.get_or_load("a", failing)
        assert "a" not in cache
        assert cache.get_or_load("a", lambda: 42) == 42

    def test_invalidate_key(self):
        cache = SingleFlightCache()
        cache.get_or_load("a", lambda: 1)
        cache.get_or_load("b", lambda: 2)
        cache.invalidate("a")
        assert "a" not in cache
        assert "b" in cache
        assert cache.get_or_load("a", lambda: 3) == 3

    def test_invalidate_all(self):
        cache = SingleFlightCache()
        cache.get_or_load("a", lambda: 1)
        cache.invalidate()
        assert len(cache) == 0

    def test_lru_eviction(self):
        """The least recently used entry goes once maxsize is exceeded."""
        cache = SingleFlightCache(maxsize=2)
        cache.get_or_load("a", lambda: 1)
        cache.get_or_load("b", lambda: 2)
        cache.get_or_load("a", lambda: 1)  # refresh a
        cache.get_or_load("c", lambda: 3)
        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache
        assert cache.info().currsize == 2
        assert cache.info().maxsize == 2

    def test_unbounded_by_default(self):
        cache = SingleFlightCache()
        for i in range(100):
            cache.get_or_load(i, lambda i=i: i)
        assert len(cache) == 100
        assert cache.info().maxsize is None

    @pytest.mark.parametrize("maxsize", [0, -1])
    def test_invalid_maxsize(self, maxsize):
        with pytest.raises(InvalidArgumentError):
            SingleFlightCache(maxsize=maxsize)

    def test_key_locks_released_after_failed_loads(self):
        cache = SingleFlightCache(maxsize=4)

        def failing():
            raise LookupError("missing")

        for i in range(50):
            with pytest.raises(LookupError):
                cache.get_or_load(f"missing-{i}", failing)
        assert cache._key_locks == {}
        assert len(cache) == 0

    def test_key_locks_released_after_concurrent_load(self):
        cache = SingleFlightCache(maxsize=2)
        barrier = threading.Barrier(6)

        def loader():
            time.sleep(0.02)
            return 1

        def request(_):
            barrier.wait()
            return cache.get_or_load("key", loader)

        with ThreadPoolExecutor(max_workers=6) as pool:
            assert list(pool.map(request, range(6))) == [1] * 6
        assert cache._key_locks == {}

    def test_single_load_when_invalidated_while_waiting(self):
        """Requesters queued behind a load share its lock even if the entry
        is dropped before they re-check."""
        cache = SingleFlightCache(maxsize=1)
        loading = threading.Event()
        release = threading.Event()
        active = []
        overlaps = []
        lock = threading.Lock()

        def loader():
            with lock:
                active.append(1)
                if len(active) > 1:
                    overlaps.append(len(active))
            loading.set()
            release.wait(timeout=10)
            with lock:
                active.pop()
            return object()

        with ThreadPoolExecutor(max_workers=4) as pool:
            first = pool.submit(cache.get_or_load, "a", loader)
            assert loading.wait(timeout=10)
            waiters = [pool.submit(cache.get_or_load, "a", loader) for _ in range(3)]
            time.sleep(0.05)
            release.set()
            first.result(timeout=10)
            cache.invalidate("a")
            for w in waiters:
                w.result(timeout=10)

        assert overlaps == []
        assert cache._key_locks == {}

    def test_hit_count_exact_under_concurrency(self):
        cache = SingleFlightCache()
        cache.get_or_load("a", lambda: 1)

        def read(_):
            for _ in range(200):
                cache.get_or_load("a", lambda: 1)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(read, range(8)))
        assert cache.info().hits == 8 * 200
