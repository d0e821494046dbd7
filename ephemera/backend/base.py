"""Backend interface definitions.

Defines the Backend abstract class every storage driver implements. Keys
are opaque strings; hash values are serialized strings and counters are
integers. Absent keys are reported as ``None``, never raised.
"""
from __future__ import annotations

import hashlib
import json
from abc import ABC, abstractmethod
from typing import Any, Optional

from ..expiry import NEVER_EXPIRE


def config_digest(kind: str, config: Any) -> str:
    """Stable digest of a backend configuration.

    Two backends with the same kind and configuration produce the same
    digest across processes.
    """
    payload = json.dumps({"kind": kind, "config": config}, sort_keys=True, default=str)
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()


class Backend(ABC):
    """Abstract storage backend.

    Implementations must be safe for concurrent use when configured as
    thread safe. Driver failures surface as `BackendError`.
    """

    @property
    @abstractmethod
    def config_key(self) -> str:
        """Identity of this backend's configuration."""

    # Hashes
    @abstractmethod
    def get(self, key: str, expiry: Optional[int] = NEVER_EXPIRE) -> Optional[str]:
        """Return the serialized value stored under ``key`` or ``None``.

        ``expiry`` is the caller's configured bucket expiry; single stores
        ignore it, the Multi backend uses it while migrating.
        """

    @abstractmethod
    def set(self, key: str, value: str, expiry: Optional[int] = NEVER_EXPIRE) -> Any:
        """Write ``value`` and, unless ``expiry`` is NEVER_EXPIRE, its TTL."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete ``key``. Deleting an absent key is not an error."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Return True if ``key`` holds a live (unexpired) value."""

    # Counters
    @abstractmethod
    def getc(self, key: str, expiry: Optional[int] = NEVER_EXPIRE) -> Optional[int]: ...

    @abstractmethod
    def setc(self, key: str, value: int, expiry: Optional[int] = NEVER_EXPIRE) -> Any: ...

    @abstractmethod
    def deletec(self, key: str) -> None: ...

    @abstractmethod
    def existsc(self, key: str) -> bool: ...

    @abstractmethod
    def incrby(self, key: str, amount: int, expiry: Optional[int] = NEVER_EXPIRE) -> int:
        """Atomically add ``amount`` to the counter and return the new value."""

    @abstractmethod
    def decrby(self, key: str, amount: int, expiry: Optional[int] = NEVER_EXPIRE) -> int:
        """Atomically subtract ``amount`` from the counter and return the new value."""

    def incr(self, key: str, expiry: Optional[int] = NEVER_EXPIRE) -> int:
        return self.incrby(key, 1, expiry)

    def decr(self, key: str, expiry: Optional[int] = NEVER_EXPIRE) -> int:
        return self.decrby(key, 1, expiry)

    # Expiry/TTL
    @abstractmethod
    def expire(self, key: str, ttl: Any) -> Any:
        """Set or refresh the TTL of ``key`` in seconds.

        Raises `ConfigurationError` when ``ttl`` is not numeric.
        """

    @abstractmethod
    def ttl(self, key: str) -> Optional[int]:
        """Remaining seconds to live, or ``None`` when unset or absent."""

    @abstractmethod
    def flush(self) -> None:
        """Remove everything. Intended for tests and operations."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.config_key[:12]})"
