"""Ephemeral storage for application objects.

Mix `Ephemeral` into any class whose instances have an ``id`` (or that
override `storage_key`) to give them temporary storage::

    class BigComplexCalcer(Ephemeral, expires_in=600):
        def big_complex_calc(self):
            return self.retrieve(complex=from_method("do_big_complex_calc"))

        def do_big_complex_calc(self):
            result = ...
            self.store(complex=result, last=datetime.now())
            return result

`store` merges the given keys into what is already stored; `retrieve`
returns stored values or defaults (a single value for one key, a list for
several). Values are read from the backend once per instance and cached.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from .buckets import StorageBucket, storage_bucket
from .cache import clear_hash, delete_hash, merge_args, resolve_defaults, retrieve_hash, store_hash
from .config import Config
from .expiry import NEVER_EXPIRE
from .registry import EntityTypeConfig, registry

logger = logging.getLogger(__name__)

KEY_ATTR = "_ephemera_key"
_UNSET = object()


class Ephemeral:
    def __init_subclass__(cls, expires_in: Any = _UNSET, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if expires_in is not _UNSET:
            registry.storage_expires_in(cls, expires_in)

    @classmethod
    def storage_expires_in(cls, duration: Any, bucket: Any = None) -> EntityTypeConfig:
        """Set the expiry in seconds of the default bucket or of ``bucket``."""
        return registry.storage_expires_in(cls, duration, bucket)

    @classmethod
    def storage_expiry(cls, bucket: Any = None) -> Any:
        """Expiry of the default bucket or of ``bucket``; NEVER_EXPIRE if unset."""
        return registry.storage_expiry(cls, bucket)

    @classmethod
    def storage_config(cls) -> EntityTypeConfig:
        return registry.config_for(cls)

    @classmethod
    def storage_bucket(cls, name: str, **options: Any) -> StorageBucket:
        """Declare a bucket after the class body, same options as `storage_bucket`."""
        bucket = storage_bucket(**options)
        setattr(cls, name, bucket)
        bucket.__set_name__(cls, name)
        return bucket

    def storage_key(self, bucket: Any = None) -> str:
        """The backend key for the default bucket or for ``bucket``.

        Uses ``"<ClassName>-<id>"`` and ``"<ClassName>-<id>-<bucket>"``.
        Override for classes that have no ``id``.
        """
        base = getattr(self, KEY_ATTR, None)
        if base is None:
            base = f"{type(self).__name__}-{self.id}"
            setattr(self, KEY_ATTR, base)
        return base if bucket is None else f"{base}-{bucket}"

    def store(self, values: Optional[Mapping[Any, Any]] = None, **kw: Any) -> Any:
        """Store some keys and values.

        Only the keys given change: ``store(value1=1)`` followed by
        ``store(value2=2)`` leaves both stored.
        """
        return store_hash(self, merge_args(values, kw))

    def retrieve(self, defaults: Optional[Mapping[Any, Any]] = None, **kw: Any) -> Any:
        """Retrieve stored values, or defaults.

        ``retrieve(name="Marc")`` returns one value;
        ``first, last = retrieve(first="Marc", last="Heiligers")`` returns a
        list. A ``from_method("name")`` default calls that method of the
        object when it exists.
        """
        wanted = merge_args(defaults, kw)
        return resolve_defaults(self, retrieve_hash(self), wanted)

    def delete_storage(self) -> None:
        """Delete the stored values and the cached copy."""
        delete_hash(self)

    def clear_storage(self) -> None:
        """Drop the cached values; the next retrieve reads the backend again."""
        clear_hash(self)

    def expire_storage(self, seconds: Any, bucket: Any = None) -> Any:
        """Expire the stored data of the default bucket or ``bucket`` in ``seconds``."""
        if seconds is NEVER_EXPIRE:
            return None
        return Config.current_backend().expire(self.storage_key(bucket), seconds)
