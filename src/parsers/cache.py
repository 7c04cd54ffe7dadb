"""In-memory staleness cache for upstream responses and computed reports.

A hint cache, not a source of truth: a miss only costs a redundant fetch.
Insertion order doubles as recency: a hit moves the entry to the newest end,
and at capacity the oldest entry is evicted regardless of its TTL.
"""

import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

# TTLs in seconds
CACHE_TTL: dict[str, float] = {
    "price": 30.0,
    "token_meta": 300.0,
    "holders": 120.0,
    "wallet": 120.0,
    "top_traders": 120.0,
    "trade_history": 300.0,
}


class StalenessCache:
    def __init__(self, max_size: int = 500, *, clock: Callable[[], float] = time.monotonic) -> None:
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._max_size = max_size
        self._clock = clock

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() > expires_at:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    def set(self, key: str, value: Any, ttl_sec: float) -> None:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self._max_size:
            self._entries.popitem(last=False)
        self._entries[key] = (self._clock() + ttl_sec, value)

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.has(key)
