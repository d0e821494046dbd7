"""Integer counters.

Counters are never cached on the entity: every call goes to the backend,
whose native increment keeps concurrent updates from separate instances,
threads and processes consistent.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .cache import clear_hash
from .config import Config
from .expiry import NEVER_EXPIRE, coerce_ttl, expiry_for_write
from .registry import registry

logger = logging.getLogger(__name__)

Seed = Optional[Callable[[Any], int]]


def store_counter(entity: Any, counter: str, value: int) -> Any:
    """Overwrite the counter, keeping the remaining TTL of an existing one."""
    backend = Config.current_backend()
    key = entity.storage_key(counter)
    exists = backend.existsc(key)
    configured = registry.storage_expiry(type(entity), counter)
    expiry = expiry_for_write(backend, key, not exists, configured, counter=True)
    return backend.setc(key, int(value), expiry)


def retrieve_counter(entity: Any, counter: str, default: Any = 0) -> Any:
    backend = Config.current_backend()
    key = entity.storage_key(counter)
    value = backend.getc(key, registry.storage_expiry(type(entity), counter))
    return default if value is None else int(value)


def _seed(backend: Any, entity: Any, counter: str, key: str, seed: Seed) -> None:
    if seed is None or backend.existsc(key):
        return
    value = seed(entity)
    logger.debug("Seeding counter %s with %s", key, value)
    store_counter(entity, counter, value)


def _change(entity: Any, counter: str, method: str, amount: Optional[int], seed: Seed) -> int:
    backend = Config.current_backend()
    key = entity.storage_key(counter)
    _seed(backend, entity, counter, key, seed)
    configured = coerce_ttl(registry.storage_expiry(type(entity), counter))
    # Native increments leave an existing TTL untouched.
    expiry = NEVER_EXPIRE if backend.existsc(key) else configured
    if amount is None:
        return getattr(backend, method)(key, expiry)
    return getattr(backend, method)(key, int(amount), expiry)


def increment_counter(entity: Any, counter: str, seed: Seed = None) -> int:
    return _change(entity, counter, "incr", None, seed)


def increment_counter_by(entity: Any, counter: str, amount: int, seed: Seed = None) -> int:
    return _change(entity, counter, "incrby", amount, seed)


def decrement_counter(entity: Any, counter: str, seed: Seed = None) -> int:
    return _change(entity, counter, "decr", None, seed)


def decrement_counter_by(entity: Any, counter: str, amount: int, seed: Seed = None) -> int:
    return _change(entity, counter, "decrby", amount, seed)


def delete_counter(entity: Any, counter: str) -> None:
    Config.current_backend().deletec(entity.storage_key(counter))
    clear_hash(entity, counter)
