"""Per-entity cache of bucket hashes.

Each entity instance keeps the hashes it has loaded or written, so within
its lifetime a bucket is read from the backend at most once. The cache is
not invalidated by writes from other instances or processes.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from .config import Config
from .expiry import expiry_for_write
from .registry import bucket_name, registry

logger = logging.getLogger(__name__)

CACHE_ATTR = "_ephemera_cache"


class EntityCache:
    def __init__(self) -> None:
        self.loaded: Dict[str, Dict[str, Any]] = {}
        self.is_new: Dict[str, bool] = {}

    def forget(self, bucket: str) -> None:
        self.loaded.pop(bucket, None)
        self.is_new.pop(bucket, None)


def cache_for(entity: Any) -> EntityCache:
    cache = getattr(entity, CACHE_ATTR, None)
    if cache is None:
        cache = EntityCache()
        setattr(entity, CACHE_ATTR, cache)
    return cache


def retrieve_hash(entity: Any, bucket: Any = None) -> Dict[str, Any]:
    """Return the hash stored in ``bucket``, loading it on first use.

    An absent value yields an empty hash and marks the bucket as new, which
    makes the next write apply the bucket's full expiry.
    """
    name = bucket_name(bucket)
    cache = cache_for(entity)
    if name in cache.loaded:
        return cache.loaded[name]

    key = entity.storage_key(bucket)
    configured = registry.storage_expiry(type(entity), bucket)
    raw = Config.current_backend().get(key, configured)

    cache.is_new[name] = raw is None
    hash_ = {} if raw is None else Config.serializer.load(raw)
    cache.loaded[name] = hash_
    return hash_


def store_hash(entity: Any, values: Mapping[Any, Any], bucket: Any = None) -> Dict[str, Any]:
    """Merge ``values`` into the bucket's hash and write it back.

    Keys not mentioned in ``values`` keep their stored values.
    """
    name = bucket_name(bucket)
    merged = dict(retrieve_hash(entity, bucket))
    for k, v in values.items():
        merged[str(k)] = v
    payload = Config.serializer.dump(merged)

    backend = Config.current_backend()
    cache = cache_for(entity)
    key = entity.storage_key(bucket)
    configured = registry.storage_expiry(type(entity), bucket)
    expiry = expiry_for_write(backend, key, cache.is_new.get(name, True), configured)
    backend.set(key, payload, expiry)

    cache.loaded[name] = merged
    cache.is_new[name] = False
    return merged


def delete_hash(entity: Any, bucket: Any = None) -> None:
    Config.current_backend().delete(entity.storage_key(bucket))
    clear_hash(entity, bucket)


def clear_hash(entity: Any, bucket: Any = None) -> None:
    """Forget the cached hash so the next retrieve goes to the backend."""
    cache_for(entity).forget(bucket_name(bucket))


class MethodDefault:
    """A default computed by calling a method of the entity."""

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"from_method({self.name!r})"


def from_method(name: str) -> MethodDefault:
    return MethodDefault(name)


def resolve_default(entity: Any, default: Any) -> Any:
    """Compute a `from_method` default, or return a literal one.

    The method name itself is the default when the entity has no such
    method or the method returns ``None`` or ``False``.
    """
    if isinstance(default, MethodDefault):
        method = getattr(entity, default.name, None)
        if callable(method):
            value = method()
            if value is not None and value is not False:
                return value
        return default.name
    return default


def resolve_defaults(entity: Any, hash_: Mapping[str, Any], defaults: Mapping[Any, Any]) -> Union[Any, List[Any]]:
    """Look up each key of ``defaults`` in ``hash_``.

    ``None`` and ``False`` count as missing. Returns the single value when
    one key was asked for, else a list in the order of ``defaults``.
    """
    result = []
    for key, default in defaults.items():
        value = hash_.get(str(key))
        if value is None or value is False:
            value = resolve_default(entity, default)
        result.append(value)
    if len(result) == 1:
        return result[0]
    return result


def merge_args(values: Optional[Mapping[Any, Any]], extra: Mapping[str, Any]) -> Dict[Any, Any]:
    merged: Dict[Any, Any] = dict(values or {})
    merged.update(extra)
    return merged
