from __future__ import annotations

import time
from collections.abc import Callable, Hashable
from typing import Protocol


class ResponseCache(Protocol):
    """Storage for response bodies of account queries whose results rarely change."""

    def get(self, key: Hashable) -> str | None: ...

    def set(self, key: Hashable, value: str) -> None: ...

    def invalidate(self, key: Hashable) -> None: ...

    def clear(self) -> None: ...


class TTLCache:
    """
    In-process cache where every entry expires `ttl` seconds after it was stored.

    Not synchronised; share one instance between threads only behind a lock.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, str]] = {}

    def get(self, key: Hashable) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: Hashable, value: str) -> None:
        self._entries[key] = (self._clock() + self.ttl, value)

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
