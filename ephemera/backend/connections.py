"""Connection handles keyed by backend configuration.

Store clients are not assumed safe for multiplexed use, so a backend asking
for a thread-safe setup gets one handle per calling thread. Slots are kept
in an explicit map guarded by a lock.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

Slot = Tuple[str, Optional[int]]


class ConnectionRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._connections: Dict[Slot, Any] = {}

    def _slot(self, config_key: str, per_thread: bool) -> Slot:
        return (config_key, threading.get_ident() if per_thread else None)

    def _prune(self) -> None:
        # Caller holds the lock.
        live = {t.ident for t in threading.enumerate()}
        for slot in [s for s in self._connections if s[1] is not None and s[1] not in live]:
            del self._connections[slot]

    def acquire(self, config_key: str, factory: Callable[[], Any], per_thread: bool = False) -> Any:
        """Return the handle for ``config_key``, creating it on first use.

        With ``per_thread`` each calling thread gets its own handle. Handles
        of threads that have exited are dropped whenever a new per-thread
        handle is opened.
        """
        slot = self._slot(config_key, per_thread)
        with self._lock:
            conn = self._connections.get(slot)
            if conn is None:
                if per_thread:
                    self._prune()
                conn = factory()
                self._connections[slot] = conn
                logger.debug("Opened connection for %s (thread=%s)", config_key[:12], slot[1])
            return conn

    def release(self, config_key: str) -> None:
        """Forget every handle opened for ``config_key``."""
        with self._lock:
            for slot in [s for s in self._connections if s[0] == config_key]:
                del self._connections[slot]

    def clear(self) -> None:
        with self._lock:
            self._connections.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)


registry = ConnectionRegistry()
