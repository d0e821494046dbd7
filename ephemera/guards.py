"""Conditions and fallbacks attached to storage buckets.

A bucket declared with ``condition`` only runs an operation when its
`Guard` allows it; otherwise the bucket's `Fallback` runs instead. Both are
called with the entity, the operation name (``"store_<bucket>"``,
``"increment_<bucket>_by"``, ...) and the operation's arguments.
"""
from __future__ import annotations

from typing import Any, Callable, Sequence


class Guard:
    def allows(self, entity: Any, operation: str, args: Sequence[Any]) -> bool:
        raise NotImplementedError


class AlwaysAllow(Guard):
    def allows(self, entity: Any, operation: str, args: Sequence[Any]) -> bool:
        return True

    def __repr__(self) -> str:
        return "AlwaysAllow()"


class Deny(Guard):
    def allows(self, entity: Any, operation: str, args: Sequence[Any]) -> bool:
        return False

    def __repr__(self) -> str:
        return "Deny()"


class Predicate(Guard):
    def __init__(self, fn: Callable[..., Any]) -> None:
        self.fn = fn

    def allows(self, entity: Any, operation: str, args: Sequence[Any]) -> bool:
        return bool(self.fn(entity, operation, *args))

    def __repr__(self) -> str:
        return f"Predicate({self.fn!r})"


class Fallback:
    def run(self, entity: Any, operation: str, args: Sequence[Any]) -> Any:
        raise NotImplementedError


class NoOp(Fallback):
    def run(self, entity: Any, operation: str, args: Sequence[Any]) -> Any:
        return None

    def __repr__(self) -> str:
        return "NoOp()"


class Invoke(Fallback):
    def __init__(self, fn: Callable[..., Any]) -> None:
        self.fn = fn

    def run(self, entity: Any, operation: str, args: Sequence[Any]) -> Any:
        return self.fn(entity, operation, *args)

    def __repr__(self) -> str:
        return f"Invoke({self.fn!r})"


def _method_caller(name: str) -> Callable[..., Any]:
    def call(entity: Any, operation: str, *args: Any) -> Any:
        return getattr(entity, name)(operation, *args)
    call.__name__ = name
    return call


def as_guard(value: Any) -> Guard:
    """Adapt ``None``, a bool, a callable or a method name to a `Guard`.

    A method name is looked up on the entity and called with the operation
    name and arguments.
    """
    if isinstance(value, Guard):
        return value
    if value is None or value is True:
        return AlwaysAllow()
    if value is False:
        return Deny()
    if isinstance(value, str):
        return Predicate(_method_caller(value))
    if callable(value):
        return Predicate(value)
    raise TypeError(f"Cannot use {value!r} as a storage condition")


def as_fallback(value: Any) -> Fallback:
    if isinstance(value, Fallback):
        return value
    if value is None or isinstance(value, bool):
        return NoOp()
    if isinstance(value, str):
        return Invoke(_method_caller(value))
    if callable(value):
        return Invoke(value)
    raise TypeError(f"Cannot use {value!r} as a storage fallback")
