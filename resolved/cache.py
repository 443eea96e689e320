"""TTL-bounded cache of remote issue states keyed by URL."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from .models import RemoteState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A remote state and the time it was fetched."""

    state: RemoteState
    fetched_at: float

    def is_fresh(self, now: float, ttl: float) -> bool:
        return now - self.fetched_at < ttl


class StateCache:
    """Process-session cache of remote states.

    Entries older than the TTL are treated as absent and evicted when read;
    there is no background sweep. Owned by a single session and only mutated
    from the event loop thread.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        """Initialize the cache.

        Args:
            ttl_seconds: Maximum age of an entry before it must be refetched
            clock: Monotonic time source, injectable for tests
        """
        if ttl_seconds <= 0:
            raise ValueError("Cache TTL must be positive")
        self.ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, url: str) -> RemoteState | None:
        """Return the cached state for a URL, or None if absent or expired."""
        entry = self._entries.get(url)
        if entry is None:
            return None

        if not entry.is_fresh(self._clock(), self.ttl):
            logger.debug(f"Cache entry expired for {url}")
            del self._entries[url]
            return None

        return entry.state

    def set(self, url: str, state: RemoteState) -> None:
        """Store a state stamped with the current time (last writer wins)."""
        self._entries[url] = CacheEntry(state=state, fetched_at=self._clock())

    def invalidate(self, url: str) -> None:
        self._entries.pop(url, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and self.get(url) is not None

    def __len__(self) -> int:
        """Number of stored entries, including expired ones not yet evicted."""
        return len(self._entries)

    def __repr__(self) -> str:
        return f"StateCache(entries={len(self)}, ttl={self.ttl})"
