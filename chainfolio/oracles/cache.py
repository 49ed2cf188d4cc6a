"""TTL cache for price data."""
from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any


class CacheEntry:
    """A cached value stamped with the clock reading at insertion."""

    __slots__ = ("value", "stored_at")

    def __init__(self, value: Any, stored_at: float) -> None:
        self.value = value
        self.stored_at = stored_at


class PriceCache:
    """In-process mapping with lazy expiry on read.

    An entry older than ``ttl_seconds`` is treated as absent and dropped when
    read; nothing evicts entries in the background.
    """

    def __init__(
        self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(value, self._clock())

    def __len__(self) -> int:
        return len(self._entries)
