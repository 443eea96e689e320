"""Tests for the TTL state cache."""

import pytest

from resolved.cache import CacheEntry, StateCache
from resolved.models import IssueStatus, RemoteState

URL = "https://github.com/owner/repo/issues/42"


class TestStateCache:
    """Test StateCache class."""

    def test_get_after_set_within_ttl(self, manual_clock, closed_state) -> None:
        """Test a fresh entry is returned unchanged."""
        cache = StateCache(300, clock=manual_clock)
        cache.set(URL, closed_state)

        manual_clock.advance(299.9)

        assert cache.get(URL) == closed_state

    def test_expired_entry_is_absent_and_evicted(
        self, manual_clock, closed_state
    ) -> None:
        """Test an entry at or past its TTL reads as absent and is evicted."""
        cache = StateCache(300, clock=manual_clock)
        cache.set(URL, closed_state)

        manual_clock.advance(300)

        assert cache.get(URL) is None
        assert len(cache) == 0

    def test_never_seen_key(self, manual_clock) -> None:
        """Test unknown keys read as absent."""
        assert StateCache(10, clock=manual_clock).get(URL) is None

    def test_set_overwrites_and_refreshes(self, manual_clock, closed_state) -> None:
        """Test the last write wins and restarts the TTL."""
        cache = StateCache(10, clock=manual_clock)
        cache.set(URL, RemoteState(status=IssueStatus.OPEN, title="Fix"))
        manual_clock.advance(8)
        cache.set(URL, closed_state)
        manual_clock.advance(8)

        assert cache.get(URL) == closed_state

    def test_contains_respects_ttl(self, manual_clock, closed_state) -> None:
        """Test membership checks honour expiry."""
        cache = StateCache(5, clock=manual_clock)
        cache.set(URL, closed_state)

        assert URL in cache
        manual_clock.advance(5)
        assert URL not in cache

    def test_invalidate_and_clear(self, manual_clock, closed_state) -> None:
        """Test explicit removal."""
        cache = StateCache(5, clock=manual_clock)
        cache.set(URL, closed_state)
        cache.set("other", closed_state)

        cache.invalidate(URL)
        assert cache.get(URL) is None
        assert len(cache) == 1

        cache.clear()
        assert len(cache) == 0

    def test_independent_instances(self, manual_clock, closed_state) -> None:
        """Test caches share no state."""
        first = StateCache(5, clock=manual_clock)
        second = StateCache(5, clock=manual_clock)
        first.set(URL, closed_state)

        assert second.get(URL) is None

    def test_ttl_must_be_positive(self) -> None:
        """Test zero or negative TTL is rejected."""
        with pytest.raises(ValueError):
            StateCache(0)


def test_cache_entry_freshness(closed_state) -> None:
    """Test CacheEntry.is_fresh boundary."""
    entry = CacheEntry(state=closed_state, fetched_at=100.0)

    assert entry.is_fresh(now=109.9, ttl=10)
    assert not entry.is_fresh(now=110.0, ttl=10)


def test_len_counts_unevicted_entries(manual_clock, closed_state) -> None:
    """Test length is the raw entry count until an expired entry is read."""
    cache = StateCache(5, clock=manual_clock)
    cache.set(URL, closed_state)
    manual_clock.advance(10)

    assert len(cache) == 1
    assert URL not in cache
    assert len(cache) == 0
