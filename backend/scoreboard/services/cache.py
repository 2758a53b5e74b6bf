import time
from dataclasses import dataclass
from typing import Any, Callable


@dataclass
class _Entry:
    stored_at: float
    value: Any


class TTLCache:
    """Small keyed cache whose entries are valid while ``clock() - stored_at < ttl_s``."""

    def __init__(self, *, max_items: int = 64, ttl_s: float = 300, clock: Callable[[], float] = time.monotonic) -> None:
        self._max_items = max(1, int(max_items or 1))
        self._ttl_s = max(0.0, float(ttl_s or 0))
        self._clock = clock
        self._items: dict[str, _Entry] = {}

    def get(self, key: str) -> Any | None:
        entry = self._items.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self._ttl_s:
            self._items.pop(key, None)
            return None
        return entry.value

    def set(self, key: str, value: Any) -> None:
        self._evict_if_needed()
        self._items[key] = _Entry(stored_at=self._clock(), value=value)

    def delete(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()

    def _evict_if_needed(self) -> None:
        if len(self._items) < self._max_items:
            return
        now = self._clock()
        for k in list(self._items.keys()):
            if self._items.get(k) and now - self._items[k].stored_at >= self._ttl_s:
                self._items.pop(k, None)
        while len(self._items) >= self._max_items and self._items:
            self._items.pop(next(iter(self._items)), None)
