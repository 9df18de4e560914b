import copy
import logging
from collections import OrderedDict
from typing import Any, Generic, Tuple, TypeVar

import trio

logger = logging.getLogger(__name__)

CacheKey = TypeVar("CacheKey")


class RamCache(Generic[CacheKey]):
    """
    In-memory LRU cache with a maximum entry age.

    Concurrency:
      - guarded by a trio.Lock
      - get() marks the entry as recently used, has() does not
      - set() inserts/updates and evicts LRU items to stay under max_entries
      - entries older than max_age (seconds, trio clock) read as missing

    Values are deep-copied on the way in and on the way out, so callers
    never share state with the cache.
    """

    def __init__(self, *, max_entries: int = 1000, max_age: float = 60.0) -> None:
        if max_entries < 0:
            raise ValueError("max_entries must be >= 0")
        if max_age <= 0:
            raise ValueError("max_age must be > 0")
        self._max_entries = max_entries
        self._max_age = max_age
        self._lock = trio.Lock()
        self._lru: OrderedDict[CacheKey, Tuple[float, Any]] = OrderedDict()
        """key -> (stored_at, value)"""

    def _live(self, key: CacheKey) -> Tuple[float, Any] | None:
        item = self._lru.get(key)
        if item is None:
            return None
        stored_at, _ = item
        if trio.current_time() - stored_at > self._max_age:
            del self._lru[key]  # Expired
            logger.debug(f"ram_cache expired {key!r}")
            return None
        return item

    async def get(self, key: CacheKey) -> Any | None:
        if self._max_entries == 0:
            return None
        async with self._lock:
            item = self._live(key)
            if item is None:
                return None
            # mark as recently used
            self._lru.move_to_end(key, last=True)
            return copy.deepcopy(item[1])

    async def has(self, key: CacheKey) -> bool:
        if self._max_entries == 0:
            return False
        async with self._lock:
            return self._live(key) is not None

    async def set(self, key: CacheKey, value: Any) -> Any:
        if self._max_entries == 0:
            return value
        async with self._lock:
            self._lru[key] = (trio.current_time(), copy.deepcopy(value))
            self._lru.move_to_end(key, last=True)
            while len(self._lru) > self._max_entries:
                evicted, _ = self._lru.popitem(last=False)
                logger.debug(f"ram_cache evicted {evicted!r}")
        return value

    async def delete(self, key: CacheKey) -> None:
        async with self._lock:
            self._lru.pop(key, None)

    async def clear(self) -> None:
        async with self._lock:
            self._lru.clear()

    async def stats(self) -> tuple[int, int]:
        """Returns (items, max_entries)."""
        async with self._lock:
            return (len(self._lru), self._max_entries)
