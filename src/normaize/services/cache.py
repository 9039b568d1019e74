"""
Summary cache with per-entry expiry.
"""

import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional, Tuple

from normaize.utils.logger import get_logger

logger = get_logger(__name__)


class Cache(ABC):
    """
    Key/value cache abstraction used by the dataset service.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when missing or expired."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store `value` for `ttl` seconds."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Drop `key` if present."""

    def get_or_set(self, key: str, factory: Callable[[], Any], ttl: float) -> Any:
        value = self.get(key)
        if value is None:
            value = factory()
            self.set(key, value, ttl)
        return value


class _KeyLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class InMemoryCache(Cache):
    """
    Process-local cache. Concurrent misses on the same key are coalesced:
    one caller computes, the others wait on the key's lock and reuse the value.
    `remove` waits for an in-flight computation of the key, so a value
    computed before the removal never lands after it.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()
        # Only keys someone is holding or waiting on have an entry here
        self._key_locks: Dict[str, _KeyLock] = {}

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: float) -> None:
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            self._entries[key] = (value, now + ttl)

    def remove(self, key: str) -> None:
        with self._key_locked(key):
            with self._lock:
                self._entries.pop(key, None)

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, (_, expires_at) in self._entries.items() if now >= expires_at]
        for k in expired:
            del self._entries[k]

    @contextmanager
    def _key_locked(self, key: str) -> Iterator[None]:
        with self._lock:
            entry = self._key_locks.get(key)
            if entry is None:
                entry = self._key_locks[key] = _KeyLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._lock:
                entry.users -= 1
                if entry.users == 0:
                    del self._key_locks[key]

    def get_or_set(self, key: str, factory: Callable[[], Any], ttl: float) -> Any:
        value = self.get(key)
        if value is not None:
            logger.debug(f"Cache hit: {key}")
            return value

        with self._key_locked(key):
            # Another caller may have filled the entry while we waited
            value = self.get(key)
            if value is not None:
                return value
            logger.debug(f"Cache miss: {key}")
            value = factory()
            self.set(key, value, ttl)
            return value
