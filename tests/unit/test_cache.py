"""
Unit tests for TTLCache.

Uses a fake clock so expiry is deterministic.
"""

import pytest

from dexarb.market.cache import TTLCache


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestTTLCache:
    """Tests for TTLCache."""

    def test_get_missing(self, clock: FakeClock) -> None:
        """Test that an unknown key misses."""
        cache: TTLCache[str, float] = TTLCache(10.0, clock)

        assert cache.get("pool") is None
        assert cache.misses == 1

    def test_fresh_entry_hits(self, clock: FakeClock) -> None:
        """Test that an entry is served until its TTL elapses."""
        cache: TTLCache[str, float] = TTLCache(10.0, clock)
        cache.set("pool", 2000.0)

        clock.advance(9.9)

        assert cache.get("pool") == 2000.0
        assert cache.hits == 1

    def test_expired_entry_misses(self, clock: FakeClock) -> None:
        """Test that a stale entry is evicted on read."""
        cache: TTLCache[str, float] = TTLCache(10.0, clock)
        cache.set("pool", 2000.0)

        clock.advance(10.0)

        assert cache.get("pool") is None
        assert "pool" not in cache
        assert len(cache) == 0

    def test_set_refreshes_timestamp(self, clock: FakeClock) -> None:
        """Test that overwriting restarts the TTL."""
        cache: TTLCache[str, float] = TTLCache(10.0, clock)
        cache.set("pool", 1.0)
        clock.advance(8.0)
        cache.set("pool", 2.0)
        clock.advance(8.0)

        assert cache.get("pool") == 2.0
        assert cache.age("pool") == pytest.approx(8.0)

    def test_no_ttl_never_expires(self, clock: FakeClock) -> None:
        """Test that a None TTL keeps entries until invalidated."""
        cache: TTLCache[str, int] = TTLCache(None, clock)
        cache.set("key", 1)

        clock.advance(1e9)

        assert cache.get("key") == 1

    def test_invalidate(self, clock: FakeClock) -> None:
        """Test single and wholesale invalidation."""
        cache: TTLCache[str, int] = TTLCache(10.0, clock)
        cache.set("a", 1)
        cache.set("b", 2)

        cache.invalidate("a")
        cache.invalidate("missing")
        assert cache.get("a") is None
        assert cache.get("b") == 2

        cache.invalidate_all()
        assert len(cache) == 0

    def test_hit_rate(self, clock: FakeClock) -> None:
        """Test hit rate accounting."""
        cache: TTLCache[str, int] = TTLCache(10.0, clock)
        assert cache.hit_rate == 0.0

        cache.set("a", 1)
        cache.get("a")
        cache.get("a")
        cache.get("b")

        assert cache.hit_rate == pytest.approx(2 / 3)

    @pytest.mark.parametrize("ttl", [0.0, -1.0])
    def test_invalid_ttl(self, ttl: float) -> None:
        """Test that a non-positive TTL is rejected."""
        with pytest.raises(ValueError):
            TTLCache(ttl)
