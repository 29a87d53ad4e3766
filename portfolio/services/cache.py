from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class CacheEntry:
    value: Any
    stored_at: float
    ttl_seconds: float

    def expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl_seconds


class TTLCache:
    """Process-local key/value store with per-entry expiry.

    There is no capacity bound: keys are one per tracked external identity.
    ``get`` and ``has`` drop an expired entry as a side effect. ``clock``
    returns seconds and defaults to ``time.monotonic``.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or time.monotonic
        self._entries: dict[str, CacheEntry] = {}

    def set(self, key: str, value: Any, ttl_minutes: float = 60) -> None:
        self._entries[key] = CacheEntry(
            value=value,
            stored_at=self._clock(),
            ttl_seconds=max(0.0, float(ttl_minutes)) * 60.0,
        )

    def get(self, key: str) -> Any | None:
        entry = self._live_entry(key)
        return entry.value if entry is not None else None

    def get_stale(self, key: str) -> Any | None:
        """Return the last stored value even if it expired, without purging it."""
        entry = self._entries.get(key)
        return entry.value if entry is not None else None

    def has(self, key: str) -> bool:
        return self._live_entry(key) is not None

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def size(self) -> int:
        return len(self._entries)

    def _live_entry(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expired(self._clock()):
            del self._entries[key]
            return None
        return entry


def certifications_cache_key(username: str) -> str:
    return f"certifications:{username}"
