"""Unit tests for cache/store.py -- IdentityCache.

Covers:
- get after put within ttl returns the value
- get at/after ttl returns None and drops the entry (no stale reads)
- invalidate removes an entry regardless of remaining ttl
- per-put ttl override, purge_expired, clear
- Concurrent put/get/invalidate from many threads never corrupts an entry
"""

import threading

import pytest

from cache.store import IdentityCache


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> IdentityCache:
    return IdentityCache(ttl=60, clock=clock)


class TestReadWrite:
    def test_get_within_ttl(self, cache: IdentityCache, clock: FakeClock) -> None:
        cache.put(1, {"name": "Alice"})
        clock.advance(59)
        assert cache.get(1) == {"name": "Alice"}

    def test_miss(self, cache: IdentityCache) -> None:
        assert cache.get(404) is None

    def test_put_overwrites(self, cache: IdentityCache) -> None:
        cache.put(1, "old")
        cache.put(1, "new")
        assert cache.get(1) == "new"

    def test_overwrite_resets_ttl(self, cache: IdentityCache, clock: FakeClock) -> None:
        cache.put(1, "old")
        clock.advance(50)
        cache.put(1, "new")
        clock.advance(50)
        assert cache.get(1) == "new"


class TestExpiry:
    def test_expired_entry_is_absent(self, cache: IdentityCache, clock: FakeClock) -> None:
        cache.put(1, "v")
        clock.advance(61)
        assert cache.get(1) is None

    def test_entry_expires_exactly_at_ttl(self, cache: IdentityCache, clock: FakeClock) -> None:
        cache.put(1, "v")
        clock.advance(60)
        assert cache.get(1) is None

    def test_expired_entry_is_removed_on_read(self, cache: IdentityCache, clock: FakeClock) -> None:
        cache.put(1, "v")
        clock.advance(61)
        cache.get(1)
        assert len(cache) == 0

    def test_per_put_ttl_override(self, cache: IdentityCache, clock: FakeClock) -> None:
        cache.put(1, "short", ttl=5)
        cache.put(2, "default")
        clock.advance(10)
        assert cache.get(1) is None
        assert cache.get(2) == "default"

    def test_purge_expired(self, cache: IdentityCache, clock: FakeClock) -> None:
        cache.put(1, "a", ttl=5)
        cache.put(2, "b", ttl=5)
        cache.put(3, "c")
        clock.advance(10)
        assert cache.purge_expired() == 2
        assert len(cache) == 1
        assert cache.get(3) == "c"

    def test_non_positive_ttl_rejected(self) -> None:
        with pytest.raises(ValueError):
            IdentityCache(ttl=0)


class TestInvalidation:
    def test_invalidate_before_expiry(self, cache: IdentityCache) -> None:
        cache.put(1, "v")
        cache.invalidate(1)
        assert cache.get(1) is None

    def test_invalidate_missing_key_is_noop(self, cache: IdentityCache) -> None:
        cache.invalidate(999)
        assert len(cache) == 0

    def test_invalidate_leaves_other_keys(self, cache: IdentityCache) -> None:
        cache.put(1, "a")
        cache.put(2, "b")
        cache.invalidate(1)
        assert cache.get(2) == "b"

    def test_clear(self, cache: IdentityCache) -> None:
        cache.put(1, "a")
        cache.put(2, "b")
        cache.clear()
        assert len(cache) == 0


class TestConcurrency:
    def test_concurrent_writers_leave_whole_entries(self) -> None:
        """Every read sees a complete (writer, seq) pair that some writer stored."""
        cache = IdentityCache(ttl=60)
        errors: list[str] = []
        start = threading.Barrier(8)

        def writer(writer_id: int) -> None:
            start.wait()
            for seq in range(500):
                cache.put("k", (writer_id, seq, f"{writer_id}:{seq}"))
                value = cache.get("k")
                if value is not None and value[2] != f"{value[0]}:{value[1]}":
                    errors.append(repr(value))
                if seq % 50 == 0:
                    cache.invalidate("k")

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        final = cache.get("k")
        assert final is None or final[2] == f"{final[0]}:{final[1]}"
