"""Per-class storage configuration.

Each host class maps to an immutable `EntityTypeConfig`: the expiry of each
bucket and the descriptors of its named buckets. Configuration calls build
a new value and swap it into the registry; nothing mutates a config in
place. A class without its own entry uses its closest registered ancestor's.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional

from .exceptions import ConfigurationError
from .expiry import NEVER_EXPIRE
from .guards import AlwaysAllow, Fallback, Guard, NoOp, as_fallback, as_guard

DEFAULT_BUCKET = ""


def bucket_name(bucket: Any) -> str:
    return DEFAULT_BUCKET if bucket is None else str(bucket)


@dataclass(frozen=True)
class BucketDescriptor:
    name: str
    counter: bool = False
    expires_in: Any = NEVER_EXPIRE
    seed: Optional[Callable[[Any], int]] = None
    guard: Guard = field(default_factory=AlwaysAllow)
    fallback: Fallback = field(default_factory=NoOp)


def build_descriptor(
    name: str,
    counter: bool = False,
    expires_in: Any = NEVER_EXPIRE,
    seed: Optional[Callable[[Any], int]] = None,
    condition: Any = None,
    otherwise: Any = None,
) -> BucketDescriptor:
    """Validate bucket options and build a descriptor."""
    if not name:
        raise ConfigurationError("A storage bucket needs a name")
    if seed is not None and not counter:
        raise ConfigurationError(f"Bucket {name!r}: 'seed' only applies to counter buckets")
    if seed is not None and not callable(seed):
        raise ConfigurationError(f"Bucket {name!r}: 'seed' must be callable")
    try:
        guard = as_guard(condition)
        fallback = as_fallback(otherwise)
    except TypeError as exc:
        raise ConfigurationError(f"Bucket {name!r}: {exc}") from exc
    return BucketDescriptor(
        name=name,
        counter=bool(counter),
        expires_in=expires_in,
        seed=seed,
        guard=guard,
        fallback=fallback,
    )


def _frozen(mapping: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class EntityTypeConfig:
    expiry: Mapping[str, Any] = field(default_factory=lambda: _frozen({}))
    buckets: Mapping[str, BucketDescriptor] = field(default_factory=lambda: _frozen({}))

    def storage_expiry(self, bucket: Any = None) -> Any:
        return self.expiry.get(bucket_name(bucket), NEVER_EXPIRE)

    def with_expiry(self, duration: Any, bucket: Any = None) -> "EntityTypeConfig":
        expiry = dict(self.expiry)
        expiry[bucket_name(bucket)] = duration
        return replace(self, expiry=_frozen(expiry))

    def with_bucket(self, descriptor: BucketDescriptor) -> "EntityTypeConfig":
        buckets = dict(self.buckets)
        buckets[descriptor.name] = descriptor
        cfg = replace(self, buckets=_frozen(buckets))
        if descriptor.expires_in is not NEVER_EXPIRE:
            cfg = cfg.with_expiry(descriptor.expires_in, descriptor.name)
        return cfg

    def bucket(self, name: Any) -> Optional[BucketDescriptor]:
        return self.buckets.get(bucket_name(name))


EMPTY_CONFIG = EntityTypeConfig()


class TypeRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._configs: Dict[type, EntityTypeConfig] = {}

    def config_for(self, cls: type) -> EntityTypeConfig:
        for klass in cls.__mro__:
            cfg = self._configs.get(klass)
            if cfg is not None:
                return cfg
        return EMPTY_CONFIG

    def update(self, cls: type, change: Callable[[EntityTypeConfig], EntityTypeConfig]) -> EntityTypeConfig:
        with self._lock:
            new = change(self.config_for(cls))
            self._configs[cls] = new
            return new

    def storage_expires_in(self, cls: type, duration: Any, bucket: Any = None) -> EntityTypeConfig:
        return self.update(cls, lambda cfg: cfg.with_expiry(duration, bucket))

    def register_bucket(self, cls: type, descriptor: BucketDescriptor) -> EntityTypeConfig:
        return self.update(cls, lambda cfg: cfg.with_bucket(descriptor))

    def storage_expiry(self, cls: type, bucket: Any = None) -> Any:
        return self.config_for(cls).storage_expiry(bucket)


registry = TypeRegistry()
