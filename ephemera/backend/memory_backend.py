"""Simple memory-backed storage backend.

Values live in process memory in separate object and counter spaces, with
one expiry map shared by both. Expired keys are reaped lazily when touched.
Useful for tests and single-process deployments.
"""
from __future__ import annotations

import itertools
import time
from threading import RLock
from typing import Any, Callable, Dict, Optional

from ..expiry import NEVER_EXPIRE, coerce_ttl
from .base import Backend, config_digest

_instances = itertools.count(1)


class MemoryBackend(Backend):
    def __init__(self, name: Optional[str] = None, clock: Callable[[], float] = time.time) -> None:
        self.name = name or f"memory-{next(_instances)}"
        self._clock = clock
        self._lock = RLock()
        self._objects: Dict[str, str] = {}
        self._counters: Dict[str, int] = {}
        self._expires: Dict[str, float] = {}
        self._config_key = config_digest("memory", self.name)

    @property
    def config_key(self) -> str:
        return self._config_key

    def _reap(self, key: str) -> None:
        # Caller holds the lock.
        expires_at = self._expires.get(key)
        if expires_at is not None and expires_at <= self._clock():
            self._objects.pop(key, None)
            self._counters.pop(key, None)
            self._expires.pop(key, None)

    def _apply_expiry(self, key: str, expiry: Any) -> None:
        seconds = coerce_ttl(expiry)
        if seconds is not NEVER_EXPIRE:
            self._expires[key] = self._clock() + seconds

    def _clear_expiry_if_gone(self, key: str) -> None:
        if key not in self._objects and key not in self._counters:
            self._expires.pop(key, None)

    # Hashes
    def get(self, key: str, expiry: Optional[int] = NEVER_EXPIRE) -> Optional[str]:
        with self._lock:
            self._reap(key)
            return self._objects.get(key)

    def set(self, key: str, value: str, expiry: Optional[int] = NEVER_EXPIRE) -> Any:
        with self._lock:
            self._reap(key)
            self._objects[key] = value
            # A plain write drops any previous TTL, as Redis SET does.
            self._expires.pop(key, None)
            self._apply_expiry(key, expiry)
            return True

    def delete(self, key: str) -> None:
        with self._lock:
            self._objects.pop(key, None)
            self._clear_expiry_if_gone(key)

    def exists(self, key: str) -> bool:
        with self._lock:
            self._reap(key)
            return key in self._objects

    # Counters
    def getc(self, key: str, expiry: Optional[int] = NEVER_EXPIRE) -> Optional[int]:
        with self._lock:
            self._reap(key)
            return self._counters.get(key)

    def setc(self, key: str, value: int, expiry: Optional[int] = NEVER_EXPIRE) -> Any:
        with self._lock:
            self._reap(key)
            self._counters[key] = int(value)
            self._expires.pop(key, None)
            self._apply_expiry(key, expiry)
            return True

    def deletec(self, key: str) -> None:
        with self._lock:
            self._counters.pop(key, None)
            self._clear_expiry_if_gone(key)

    def existsc(self, key: str) -> bool:
        with self._lock:
            self._reap(key)
            return key in self._counters

    def incrby(self, key: str, amount: int, expiry: Optional[int] = NEVER_EXPIRE) -> int:
        with self._lock:
            self._reap(key)
            value = self._counters.get(key, 0) + int(amount)
            self._counters[key] = value
            self._apply_expiry(key, expiry)
            return value

    def decrby(self, key: str, amount: int, expiry: Optional[int] = NEVER_EXPIRE) -> int:
        return self.incrby(key, -int(amount), expiry)

    # Expiry/TTL
    def expire(self, key: str, ttl: Any) -> Any:
        seconds = coerce_ttl(ttl)
        with self._lock:
            self._reap(key)
            if seconds is NEVER_EXPIRE or (key not in self._objects and key not in self._counters):
                return False
            self._expires[key] = self._clock() + seconds
            self._reap(key)
            return True

    def ttl(self, key: str) -> Optional[int]:
        with self._lock:
            self._reap(key)
            expires_at = self._expires.get(key)
            if expires_at is None:
                return None
            return int(expires_at - self._clock())

    def flush(self) -> None:
        with self._lock:
            self._objects.clear()
            self._counters.clear()
            self._expires.clear()
