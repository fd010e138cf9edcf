"""Query cache owned by the caller and injected where needed, never process-global"""

import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


class QueryCache(ABC):
    """get/set/invalidate with a per-entry TTL"""

    @abstractmethod
    def get(self, key: Hashable) -> Optional[Any]:
        """Cached value, or None when missing or expired"""

    @abstractmethod
    def set(self, key: Hashable, value: Any, ttl_seconds: Optional[float] = None) -> None:
        pass

    @abstractmethod
    def invalidate(self, key: Optional[Hashable] = None) -> None:
        """Drop one key, or every entry when key is None"""


class InMemoryQueryCache(QueryCache):
    """Dictionary-backed cache with lazy expiry"""

    def __init__(self, default_ttl_seconds: float = 30.0, clock: Callable[[], float] = time.monotonic):
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}

    def get(self, key: Hashable) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        expires_at, value = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    def set(self, key: Hashable, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._entries[key] = (self._clock() + ttl, value)

    def invalidate(self, key: Optional[Hashable] = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)
