"""
Unit tests for TTLCache.
"""

import pytest

from docingest.core.status_cache import TTLCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class TestTTLCache:
    """Test suite for TTLCache."""

    def test_value_expires_after_ttl(self):
        # Arrange
        clock = FakeClock()
        cache = TTLCache(5, clock)
        cache.set("doc", "ready")

        # Act / Assert
        clock.now = 104.9
        assert cache.get("doc") == "ready"
        clock.now = 105.0
        assert cache.get("doc") is None
        assert len(cache) == 0

    def test_zero_ttl_disables_caching(self):
        cache = TTLCache(0, FakeClock())
        cache.set("doc", "ready")
        assert cache.get("doc") is None

    def test_invalidate_and_clear(self):
        cache = TTLCache(5, FakeClock())
        cache.set("a", 1)
        cache.set("b", 2)

        cache.invalidate("a")
        assert cache.get("a") is None
        assert cache.get("b") == 2

        cache.clear()
        assert len(cache) == 0

    def test_negative_ttl_rejected(self):
        with pytest.raises(ValueError):
            TTLCache(-1)

    def test_expired_entries_are_swept_on_write(self):
        # Arrange
        clock = FakeClock()
        cache = TTLCache(5, clock)
        for i in range(50):
            cache.set(f"doc-{i}", "ready")

        # Act
        clock.now = 106.0
        cache.set("fresh", "queued")

        # Assert
        assert len(cache) == 1
        assert cache.get("fresh") == "queued"

    def test_oldest_entry_evicted_at_capacity(self):
        # Arrange
        clock = FakeClock()
        cache = TTLCache(60, clock, max_entries=2)
        cache.set("a", 1)
        clock.now += 1
        cache.set("b", 2)
        clock.now += 1

        # Act
        cache.set("c", 3)

        # Assert
        assert len(cache) == 2
        assert cache.get("a") is None
        assert (cache.get("b"), cache.get("c")) == (2, 3)

    def test_rewriting_a_key_moves_it_to_newest(self):
        cache = TTLCache(60, FakeClock(), max_entries=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 10)

        cache.set("c", 3)

        assert cache.get("b") is None
        assert cache.get("a") == 10

    def test_non_positive_max_entries_rejected(self):
        with pytest.raises(ValueError):
            TTLCache(5, max_entries=0)
