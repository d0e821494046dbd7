"""Storage backends for ephemera."""
from __future__ import annotations

from typing import Any

from ..exceptions import ConfigurationError
from .base import Backend
from .distributed import DistributedRedisBackend
from .file_backend import FileBackend
from .interfaces import BackendProtocol
from .memory_backend import MemoryBackend
from .multi import Multi
from .redis_backend import RedisBackend, RedisSettings


def create_backend(backend: str = "memory", **options: Any) -> Backend:
    """Build a backend from plain options, e.g. a YAML mapping.

    ``backend`` is one of ``memory``, ``file``, ``redis``, ``distributed``
    or ``multi``. A ``multi`` backend takes ``backends``: a list of option
    mappings, newest first, each with its own ``backend`` entry.
    """
    kind = (backend or "").lower()
    if kind == "memory":
        return MemoryBackend(name=options.get("name"))
    if kind == "file":
        return FileBackend(data_dir=options.get("data_dir", "./data/ephemera"))
    if kind == "redis":
        return RedisBackend(RedisSettings(**options))
    if kind == "distributed":
        nodes = options.get("nodes")
        if not nodes:
            raise ConfigurationError("distributed backend requires 'nodes'")
        return DistributedRedisBackend(nodes, thread_safe=bool(options.get("thread_safe", False)))
    if kind == "multi":
        members = options.get("backends")
        if not members:
            raise ConfigurationError("multi backend requires 'backends'")
        return Multi([create_backend(**dict(m)) for m in members])
    raise ConfigurationError(f"Unknown backend type: {backend!r}")


__all__ = [
    "Backend",
    "BackendProtocol",
    "DistributedRedisBackend",
    "FileBackend",
    "MemoryBackend",
    "Multi",
    "RedisBackend",
    "RedisSettings",
    "create_backend",
]
