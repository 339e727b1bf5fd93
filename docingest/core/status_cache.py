"""
Time-bounded cache for status answers.

Owned by the service instance that uses it; the clock is injected so
expiry is testable without sleeping. Expired entries are swept on every
write and the map is capped at `max_entries`, evicting the oldest write.

Dependencies: time (stdlib)
System role: Status polling cache
"""

import time
from typing import Callable, Generic, Hashable, TypeVar

V = TypeVar("V")


class TTLCache(Generic[V]):
    """Key -> value cache where each entry expires ttl seconds after it is set."""

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = 10_000,
    ) -> None:
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds cannot be negative")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._ttl = ttl_seconds
        self._clock = clock
        self._max_entries = max_entries
        # Insertion order is write order; expiry times are therefore ascending.
        self._entries: dict[Hashable, tuple[V, float]] = {}

    def get(self, key: Hashable) -> V | None:
        """Return the cached value, or None when missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: Hashable, value: V) -> None:
        if self._ttl == 0:
            return
        now = self._clock()
        self._purge_expired(now)
        self._entries.pop(key, None)
        while len(self._entries) >= self._max_entries:
            del self._entries[next(iter(self._entries))]
        self._entries[key] = (value, now + self._ttl)

    def _purge_expired(self, now: float) -> None:
        for key, (_, expires_at) in list(self._entries.items()):
            if expires_at > now:
                break
            del self._entries[key]

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
