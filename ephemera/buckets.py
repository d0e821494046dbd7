"""Named storage buckets declared on a class.

    class Job(Ephemeral):
        report = storage_bucket(expires_in=600)
        progress = storage_bucket(counter=True, seed=lambda job: job.done_so_far())

    job.report.store(rows=12)
    job.report.retrieve(rows=0)
    job.progress.increment_by(5)

A hash bucket offers ``store``, ``retrieve``, ``delete`` and ``clear``;
a counter bucket additionally offers ``increment``, ``increment_by``,
``decrement`` and ``decrement_by``. Each operation first consults the
bucket's condition and runs its fallback when the condition fails.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional, Sequence, Tuple

from . import counters
from .cache import clear_hash, delete_hash, merge_args, resolve_defaults, retrieve_hash, store_hash
from .exceptions import ConfigurationError
from .expiry import NEVER_EXPIRE
from .registry import BucketDescriptor, build_descriptor, registry

logger = logging.getLogger(__name__)


def guarded(
    entity: Any,
    descriptor: BucketDescriptor,
    operation: str,
    args: Sequence[Any],
    action: Callable[[], Any],
) -> Tuple[bool, Any]:
    """Run ``action`` if the bucket's guard allows it, else its fallback.

    Returns whether the action ran, and the action's or fallback's result.
    """
    if descriptor.guard.allows(entity, operation, args):
        return True, action()
    logger.debug("%s denied for %s, running %r", operation, entity.storage_key(), descriptor.fallback)
    return False, descriptor.fallback.run(entity, operation, args)


class BoundBucket:
    def __init__(self, entity: Any, name: str) -> None:
        self.entity = entity
        self.name = name

    @property
    def descriptor(self) -> BucketDescriptor:
        descriptor = registry.config_for(type(self.entity)).bucket(self.name)
        if descriptor is None:
            raise ConfigurationError(f"{type(self.entity).__name__} has no bucket {self.name!r}")
        return descriptor

    @property
    def key(self) -> str:
        return self.entity.storage_key(self.name)

    def _run(self, operation: str, args: Sequence[Any], action: Callable[[], Any]) -> Tuple[bool, Any]:
        return guarded(self.entity, self.descriptor, operation, args, action)

    def delete(self) -> Any:
        return self._run(f"delete_{self.name}", (), lambda: delete_hash(self.entity, self.name))[1]

    def clear(self) -> Any:
        return self._run(f"clear_{self.name}", (), lambda: clear_hash(self.entity, self.name))[1]

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.key}>"


class HashBucket(BoundBucket):
    def store(self, values: Optional[Mapping[Any, Any]] = None, **kw: Any) -> Any:
        data = merge_args(values, kw)
        return self._run(f"store_{self.name}", (data,), lambda: store_hash(self.entity, data, self.name))[1]

    def retrieve(self, defaults: Optional[Mapping[Any, Any]] = None, **kw: Any) -> Any:
        wanted = merge_args(defaults, kw)
        ran, hash_ = self._run(
            f"retrieve_{self.name}", (wanted,), lambda: retrieve_hash(self.entity, self.name)
        )
        return resolve_defaults(self.entity, hash_ if ran else {}, wanted)


class CounterBucket(BoundBucket):
    def store(self, value: int) -> Any:
        return self._run(
            f"store_{self.name}", (value,), lambda: counters.store_counter(self.entity, self.name, value)
        )[1]

    def retrieve(self, default: Any = 0) -> Any:
        ran, value = self._run(
            f"retrieve_{self.name}",
            (default,),
            lambda: counters.retrieve_counter(self.entity, self.name, default),
        )
        return value if ran else default

    def increment(self) -> Any:
        seed = self.descriptor.seed
        return self._run(
            f"increment_{self.name}", (), lambda: counters.increment_counter(self.entity, self.name, seed)
        )[1]

    def increment_by(self, amount: int) -> Any:
        seed = self.descriptor.seed
        return self._run(
            f"increment_{self.name}_by",
            (amount,),
            lambda: counters.increment_counter_by(self.entity, self.name, amount, seed),
        )[1]

    def decrement(self) -> Any:
        seed = self.descriptor.seed
        return self._run(
            f"decrement_{self.name}", (), lambda: counters.decrement_counter(self.entity, self.name, seed)
        )[1]

    def decrement_by(self, amount: int) -> Any:
        seed = self.descriptor.seed
        return self._run(
            f"decrement_{self.name}_by",
            (amount,),
            lambda: counters.decrement_counter_by(self.entity, self.name, amount, seed),
        )[1]

    def delete(self) -> Any:
        return self._run(f"delete_{self.name}", (), lambda: counters.delete_counter(self.entity, self.name))[1]


class StorageBucket:
    """Class attribute declaring a bucket; registers it on the owning class."""

    def __init__(self, **options: Any) -> None:
        self.options = options
        self.name: Optional[str] = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        registry.register_bucket(owner, build_descriptor(name, **self.options))

    def __get__(self, instance: Any, owner: type = None) -> Any:
        if instance is None:
            return self
        descriptor = registry.config_for(type(instance)).bucket(self.name)
        if descriptor is not None and descriptor.counter:
            return CounterBucket(instance, self.name)
        return HashBucket(instance, self.name)


def storage_bucket(
    counter: bool = False,
    expires_in: Any = NEVER_EXPIRE,
    seed: Optional[Callable[[Any], int]] = None,
    condition: Any = None,
    otherwise: Any = None,
) -> StorageBucket:
    """Declare a bucket in a class body.

    Options:
    - ``expires_in``: expiry of the bucket in seconds (or a timedelta);
    - ``counter``: store a single integer instead of a hash;
    - ``seed``: for counters, ``seed(entity)`` gives the starting value the
      first time the counter is incremented or decremented;
    - ``condition``: callable ``(entity, operation, *args)``, method name or
      bool that must hold before an operation runs;
    - ``otherwise``: callable or method name run instead when it does not.
    """
    # Validate eagerly so a bad declaration fails at class definition.
    build_descriptor("_", counter=counter, expires_in=expires_in, seed=seed, condition=condition, otherwise=otherwise)
    return StorageBucket(
        counter=counter, expires_in=expires_in, seed=seed, condition=condition, otherwise=otherwise
    )
