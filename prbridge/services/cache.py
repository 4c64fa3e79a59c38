"""In-memory caches owned by one adapter instance.

Nothing is persisted: both caches reset on reconnect or process restart.
"""

import logging
import time
from typing import Callable, Dict, Generic, Hashable, Tuple, TypeVar

LOG = logging.getLogger("prbridge.services.cache")

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class KeyedCache(Generic[K, V]):
    """Plain map with explicit invalidation (pull request details, projects)."""

    def __init__(self, name: str = "cache") -> None:
        self.name = name
        self._items: Dict[K, V] = {}

    def get(self, key: K) -> V | None:
        return self._items.get(key)

    def set(self, key: K, value: V) -> None:
        self._items[key] = value

    def invalidate(self, key: K) -> bool:
        """Drop ``key``; return whether an entry was present."""
        removed = self._items.pop(key, None) is not None
        if removed:
            LOG.debug("%s: invalidated %s", self.name, key)
        return removed

    def clear(self) -> None:
        self._items.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)


class ExpiringCache(Generic[K, V]):
    """Map whose entries expire ``ttl`` seconds after they were set.

    ``clock`` returns seconds (monotonic by default) and is injectable for
    tests.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic, name: str = "cache") -> None:
        self.ttl = ttl
        self.name = name
        self._clock = clock
        self._items: Dict[K, Tuple[float, V]] = {}

    def is_expired(self, key: K) -> bool:
        """True when ``key`` is missing or past its expiry."""
        entry = self._items.get(key)
        return entry is None or entry[0] <= self._clock()

    def get(self, key: K) -> V | None:
        """Live value of ``key``; expired entries are dropped."""
        if self.is_expired(key):
            self._items.pop(key, None)
            return None
        return self._items[key][1]

    def set(self, key: K, value: V) -> None:
        self._items[key] = (self._clock() + self.ttl, value)

    def invalidate(self, key: K) -> bool:
        return self._items.pop(key, None) is not None

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)
