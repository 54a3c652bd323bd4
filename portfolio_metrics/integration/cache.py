from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Hashable, Protocol


logger = logging.getLogger(__name__)


class Cache(Protocol):
    """Time-bounded key/value cache injected into calling layers."""

    def get(self, key: Hashable) -> Any | None:
        ...

    def set(self, key: Hashable, value: Any, ttl_seconds: float) -> None:
        ...

    def delete(self, key: Hashable) -> None:
        ...

    def clear(self) -> None:
        ...


@dataclass
class InMemoryTTLCache(Cache):
    """Process-local cache with per-entry expiry.

    Expired entries are evicted lazily on read and by purge_expired().
    The clock is injectable so tests can move time without sleeping.
    """

    clock: Callable[[], float] = time.monotonic
    _entries: dict[Hashable, tuple[float, Any]] = field(default_factory=dict)

    def get(self, key: Hashable) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self.clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    def set(self, key: Hashable, value: Any, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            self._entries.pop(key, None)
            return
        self._entries[key] = (self.clock() + float(ttl_seconds), value)

    def delete(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def purge_expired(self) -> int:
        now = self.clock()
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for k in expired:
            self._entries.pop(k, None)
        if expired:
            logger.debug("Purged %d expired cache entries", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
