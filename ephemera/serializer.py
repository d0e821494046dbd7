"""Serialization of bucket hashes.

A hash is stored as a UTF-8 JSON object. Values JSON cannot represent
natively are written through a registered `TypeAdapter` as
``{"json_class": <name>, "data": <text>}`` and rebuilt on load when the
adapter's name is allowed.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, Optional, Protocol, Set

from .exceptions import NameResolutionError

TYPE_TAG = "json_class"
DATA_TAG = "data"


class Serializer(Protocol):
    """Serialize/deserialize bucket hashes for backends that store text.

    Implementations should be symmetric: `dump` -> str, `load` <- str.
    """

    def dump(self, value: Dict[str, Any]) -> str: ...

    def load(self, data: str) -> Dict[str, Any]: ...


@dataclass(frozen=True)
class TypeAdapter:
    name: str
    type: type
    encode: Callable[[Any], str]
    decode: Callable[[str], Any]


def _parse_datetime(text: str) -> datetime:
    return datetime.fromisoformat(text)


DATETIME_ADAPTER = TypeAdapter(
    name="datetime",
    type=datetime,
    encode=lambda value: value.isoformat(sep=" "),
    decode=_parse_datetime,
)

DATE_ADAPTER = TypeAdapter(
    name="date",
    type=date,
    encode=lambda value: value.isoformat(),
    decode=date.fromisoformat,
)


class JSONSerializer:
    """Serializer using JSON (text) with explicit type adapters.

    ``allow`` names the adapters whose tagged values are rebuilt on load;
    by default every registered adapter is allowed. With an empty ``allow``
    tagged values come back as plain dicts. A tag that names no registered
    adapter raises `NameResolutionError` while type-aware loading is on.
    """

    def __init__(
        self,
        adapters: Optional[Iterable[TypeAdapter]] = None,
        allow: Optional[Iterable[str]] = None,
    ) -> None:
        self._adapters: Dict[str, TypeAdapter] = {}
        self.allow: Set[str] = set()
        for adapter in adapters if adapters is not None else (DATETIME_ADAPTER, DATE_ADAPTER):
            self.register(adapter, allow=allow is None)
        if allow is not None:
            self.allow = set(allow)

    def register(self, adapter: TypeAdapter, allow: bool = True) -> None:
        self._adapters[adapter.name] = adapter
        if allow:
            self.allow.add(adapter.name)

    def _adapter_for(self, value: Any) -> Optional[TypeAdapter]:
        # datetime is a date subclass, so the exact type wins.
        for adapter in self._adapters.values():
            if type(value) is adapter.type:
                return adapter
        for adapter in self._adapters.values():
            if isinstance(value, adapter.type):
                return adapter
        return None

    def _default(self, value: Any) -> Any:
        adapter = self._adapter_for(value)
        if adapter is None:
            raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
        return {TYPE_TAG: adapter.name, DATA_TAG: adapter.encode(value)}

    def dump(self, value: Dict[str, Any]) -> str:
        return json.dumps(value, default=self._default)

    def _revive(self, value: Dict[str, Any]) -> Any:
        if TYPE_TAG not in value or DATA_TAG not in value:
            return value
        name = value[TYPE_TAG]
        adapter = self._adapters.get(name)
        if adapter is None:
            raise NameResolutionError(f"{name!r} does not name a registered type")
        if name not in self.allow:
            return value
        return adapter.decode(value[DATA_TAG])

    def load(self, data: str | bytes) -> Dict[str, Any]:
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        if not self.allow:
            return json.loads(data)
        return json.loads(data, object_hook=self._revive)
