"""Backend that migrates data from older backends into a newer one.

Give it an ordered list ``[newest, ..., oldest]``. Reads look in the newest
(primary) backend first; a key found only in an older backend is copied
into the primary together with its remaining TTL and then removed from
every older backend. Writes and deletes clear the older backends before
touching the primary, so an older value can never be read as canonical
once a newer one exists.

    old_backend = RedisBackend({"db": 10})
    new_backend = DistributedRedisBackend(["redis://127.0.0.1:6379/11", "redis://127.0.0.1:6379/12"])
    Config.backend = Multi([new_backend, old_backend])

Two readers racing on the same unmigrated key may both migrate it. The
second write to the primary carries the same value, so the race is benign.
Counters are different: two increments racing on an unmigrated counter can
both carry the old count into the primary.
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

from ..exceptions import ConfigurationError, DuplicateBackendError
from ..expiry import NEVER_EXPIRE
from .base import Backend, config_digest

logger = logging.getLogger(__name__)

GETC = "getc"
INCRBY = "incrby"
DECRBY = "decrby"


def carried_ttl(ttl: Optional[int]) -> Optional[int]:
    # A sub-second remainder reads as 0, and EXPIRE 0 would delete the key.
    return None if ttl is None else max(ttl, 1)


class Multi(Backend):
    def __init__(self, backends: Sequence[Backend]) -> None:
        backends = list(backends)
        if not backends:
            raise ConfigurationError("Multi backend needs at least one backend")
        keys = [be.config_key for be in backends]
        if len(set(keys)) != len(keys):
            raise DuplicateBackendError(
                "Backends are not unique: " + ", ".join(repr(be) for be in backends)
            )
        self.primary: Backend = backends[0]
        self.others: List[Backend] = backends[1:]
        self._config_key = config_digest("multi", keys)
        logger.info("Multi backend: primary %r, migrating from %s", self.primary, self.others)

    @property
    def config_key(self) -> str:
        return self._config_key

    # Hashes
    def get(self, key: str, expiry: Optional[int] = NEVER_EXPIRE) -> Optional[str]:
        value = self.primary.get(key)
        if value is None:
            value = self.migrate(key, expiry)
        return value

    def set(self, key: str, value: str, expiry: Optional[int] = NEVER_EXPIRE) -> Any:
        for be in self.others:
            be.delete(key)
        return self.primary.set(key, value, expiry)

    def delete(self, key: str) -> None:
        for be in self.others:
            be.delete(key)
        self.primary.delete(key)

    def exists(self, key: str) -> bool:
        return self.primary.exists(key) or any(be.exists(key) for be in self.others)

    # Counters
    def getc(self, key: str, expiry: Optional[int] = NEVER_EXPIRE) -> Optional[int]:
        value = self.primary.getc(key)
        if value is None:
            value = self.migratec(key, GETC, 0, expiry)
        return value

    def setc(self, key: str, value: int, expiry: Optional[int] = NEVER_EXPIRE) -> Any:
        for be in self.others:
            be.deletec(key)
        return self.primary.setc(key, value, expiry)

    def deletec(self, key: str) -> None:
        for be in self.others:
            be.deletec(key)
        self.primary.deletec(key)

    def existsc(self, key: str) -> bool:
        return self.primary.existsc(key) or any(be.existsc(key) for be in self.others)

    def incr(self, key: str, expiry: Optional[int] = NEVER_EXPIRE) -> int:
        return self.incrby(key, 1, expiry)

    def decr(self, key: str, expiry: Optional[int] = NEVER_EXPIRE) -> int:
        return self.decrby(key, 1, expiry)

    # A leftover count in an older backend is folded in even when the
    # primary already holds the counter.
    def incrby(self, key: str, amount: int, expiry: Optional[int] = NEVER_EXPIRE) -> int:
        return self.migratec(key, INCRBY, amount, expiry)

    def decrby(self, key: str, amount: int, expiry: Optional[int] = NEVER_EXPIRE) -> int:
        return self.migratec(key, DECRBY, amount, expiry)

    # Expiry/TTL
    def expire(self, key: str, ttl: Any) -> Any:
        result = self.primary.expire(key, ttl)
        for be in self.others:
            be.expire(key, ttl)
        return result

    def ttl(self, key: str) -> Optional[int]:
        expiry = self.primary.ttl(key)
        if expiry is not None:
            return expiry
        for be in self.others:
            expiry = be.ttl(key)
            if expiry is not None:
                return expiry
        return None

    def flush(self) -> None:
        self.primary.flush()
        for be in self.others:
            be.flush()

    # Migration
    def _holder(self, key: str, counter: bool) -> Optional[Backend]:
        for be in self.others:
            if (be.existsc(key) if counter else be.exists(key)):
                return be
        return None

    def migrate(self, key: str, expiry: Optional[int] = NEVER_EXPIRE) -> Optional[str]:
        """Move ``key`` from the first older backend holding it into the primary.

        The value keeps the TTL it had in the older backend. Returns the
        migrated value, or ``None`` when no backend has the key.
        """
        backend = self._holder(key, counter=False)
        if backend is None:
            # Nothing to migrate, or a concurrent reader already moved it.
            return self.primary.get(key)
        value = backend.get(key)
        ttl = carried_ttl(backend.ttl(key))
        if value is None:
            # Expired or migrated between the existence check and the read.
            return self.primary.get(key)
        self.primary.set(key, value, ttl)
        for be in self.others:
            be.delete(key)
        logger.debug("Migrated %s from %r (ttl=%s)", key, backend, ttl)
        return value

    def migratec(self, key: str, op: str = INCRBY, amount: int = 0, expiry: Optional[int] = NEVER_EXPIRE) -> Optional[int]:
        """Move a counter into the primary, optionally applying a change.

        The older backend's count is added to whatever the primary already
        holds rather than overwriting it. ``op`` is ``"incrby"``,
        ``"decrby"`` or ``"getc"``; a ``getc`` migrates without changing
        the count. When no older backend has the counter, ``incrby`` and
        ``decrby`` run against the primary with ``expiry`` while ``getc``
        returns whatever the primary holds.
        """
        backend = self._holder(key, counter=True)
        if backend is None:
            if op == GETC:
                return self.primary.getc(key)
            return getattr(self.primary, op)(key, amount, expiry)

        carried = backend.getc(key) or 0
        ttl = carried_ttl(backend.ttl(key))
        value = self.primary.incrby(key, carried, ttl)
        if amount and op != GETC:
            value = getattr(self.primary, op)(key, amount)
        for be in self.others:
            be.deletec(key)
        logger.debug("Migrated counter %s from %r (carried=%s, ttl=%s)", key, backend, carried, ttl)
        return value
