"""
cache/store.py -- In-process TTL cache for single-user lookups.

Sits in front of the user store to absorb repeated GET /users/{id} reads.
Entries are disposable copies of the store's truth: they expire passively
after their ttl (default 60 seconds) and are invalidated by every write path
that touches the same identity (profile update, password change, delete).

Usage:
    cache = IdentityCache(ttl=60)
    user = cache.get(42)            # returns the cached value or None
    cache.put(42, user)
    cache.invalidate(42)            # call on every update/delete of user 42
    cache.purge_expired()           # call periodically to trim dead entries

Concurrency: one threading.Lock guards the dict, so get/put/invalidate are
each atomic. Sequences such as get-then-put are not; last write wins.

Layer rule: cache/ does not import from api/ or auth/. Values are opaque.
"""

import threading
import time
from collections.abc import Callable, Hashable
from typing import Any, Optional

_DEFAULT_TTL = 60  # seconds


class IdentityCache:
    def __init__(self, ttl: float = _DEFAULT_TTL, clock: Callable[[], float] = time.monotonic) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[Hashable, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the cached value for key if it exists and hasn't expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def put(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        """Store value for key, replacing any existing entry."""
        lifetime = self.ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = (value, self._clock() + lifetime)

    def invalidate(self, key: Hashable) -> None:
        """Drop key regardless of its remaining ttl. Missing keys are ignored."""
        with self._lock:
            self._entries.pop(key, None)

    def purge_expired(self) -> int:
        """Delete all expired entries. Returns number of entries removed."""
        with self._lock:
            now = self._clock()
            dead = [k for k, (_, expires_at) in self._entries.items() if now >= expires_at]
            for k in dead:
                del self._entries[k]
        return len(dead)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
