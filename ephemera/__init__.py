"""ephemera: temporary key-value storage for application objects.

Objects keep a small hash of values, or integer counters, in a pluggable
backend (Redis, sharded Redis, memory, files) with optional per-bucket
expiry. The Multi backend moves data lazily from older backends into a
newer one.
"""
from .backend import (
    Backend,
    DistributedRedisBackend,
    FileBackend,
    MemoryBackend,
    Multi,
    RedisBackend,
    RedisSettings,
    create_backend,
)
from .buckets import CounterBucket, HashBucket, storage_bucket
from .cache import from_method
from .config import Config
from .entity import Ephemeral
from .exceptions import (
    BackendError,
    ConfigurationError,
    DuplicateBackendError,
    EphemeraError,
    NameResolutionError,
)
from .expiry import NEVER_EXPIRE
from .logging_config import configure_logging
from .guards import AlwaysAllow, Deny, Invoke, NoOp, Predicate
from .serializer import JSONSerializer, TypeAdapter

__version__ = "0.3.0"

__all__ = [
    "AlwaysAllow",
    "Backend",
    "BackendError",
    "Config",
    "ConfigurationError",
    "CounterBucket",
    "Deny",
    "DistributedRedisBackend",
    "DuplicateBackendError",
    "Ephemeral",
    "EphemeraError",
    "FileBackend",
    "HashBucket",
    "Invoke",
    "JSONSerializer",
    "MemoryBackend",
    "Multi",
    "NEVER_EXPIRE",
    "NameResolutionError",
    "NoOp",
    "Predicate",
    "RedisBackend",
    "RedisSettings",
    "TypeAdapter",
    "configure_logging",
    "create_backend",
    "from_method",
    "storage_bucket",
]
