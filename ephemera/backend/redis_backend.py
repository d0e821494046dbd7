"""Backend for a single Redis server.

    backend = RedisBackend(RedisSettings(host="localhost", port=6379, db=10))
    Config.backend = backend

Writes that carry an expiry are sent together with their ``EXPIRE`` in one
``MULTI``/``EXEC`` transaction, so a value is never visible without the TTL
it was written with.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional

import redis
from pydantic import BaseModel

from ..exceptions import BackendError
from ..expiry import NEVER_EXPIRE, coerce_ttl
from .base import Backend, config_digest
from .connections import registry

logger = logging.getLogger(__name__)


class RedisSettings(BaseModel):
    """Connection settings for one Redis server.

    ``url`` takes precedence over host/port/db when given. With
    ``thread_safe`` every thread talks to Redis over its own client.
    """

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    url: Optional[str] = None
    socket_timeout: Optional[float] = None
    thread_safe: bool = False

    def client_kwargs(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"url", "thread_safe"}, exclude_none=True)


def default_client(settings: RedisSettings) -> redis.Redis:
    if settings.url:
        return redis.Redis.from_url(
            settings.url, decode_responses=True, socket_timeout=settings.socket_timeout
        )
    return redis.Redis(decode_responses=True, **settings.client_kwargs())


def as_settings(value: Any) -> RedisSettings:
    if isinstance(value, RedisSettings):
        return value
    if isinstance(value, str):
        return RedisSettings(url=value)
    return RedisSettings(**(value or {}))


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except redis.RedisError as exc:
        logger.debug("Redis %s failed: %s", operation, exc)
        raise BackendError(f"Redis {operation} failed: {exc}") from exc


def write_with_expiry(conn: Any, method: str, key: str, value: Any, expiry: Any) -> Any:
    """Run ``method`` on ``conn`` and attach ``expiry`` atomically.

    Returns the result of the write itself, not of the ``EXPIRE``.
    """
    expiry = coerce_ttl(expiry)
    with translate_errors(method):
        if expiry is NEVER_EXPIRE:
            return getattr(conn, method)(key, value)
        with conn.pipeline(transaction=True) as pipe:
            getattr(pipe, method)(key, value)
            pipe.expire(key, expiry)
            results = pipe.execute()
        return results[0]


def to_ttl(seconds: Optional[int]) -> Optional[int]:
    # Redis answers -1 for "no expiry" and -2 for "no such key".
    if seconds is None or seconds < 0:
        return None
    return seconds


class RedisBackend(Backend):
    def __init__(
        self,
        settings: Any = None,
        client_factory: Optional[Callable[[RedisSettings], Any]] = None,
        **options: Any,
    ) -> None:
        self.settings = as_settings(settings if settings is not None else options)
        self._client_factory = client_factory or default_client
        self._config_key = config_digest("redis", self.settings.model_dump())

    @property
    def config_key(self) -> str:
        return self._config_key

    @property
    def connection(self) -> Any:
        return registry.acquire(
            self._config_key,
            lambda: self._client_factory(self.settings),
            per_thread=self.settings.thread_safe,
        )

    def _conn_for(self, key: str) -> Any:
        return self.connection

    # Hashes
    def get(self, key: str, expiry: Optional[int] = NEVER_EXPIRE) -> Optional[str]:
        with translate_errors("get"):
            return self._conn_for(key).get(key)

    def set(self, key: str, value: str, expiry: Optional[int] = NEVER_EXPIRE) -> Any:
        return write_with_expiry(self._conn_for(key), "set", key, value, expiry)

    def delete(self, key: str) -> None:
        with translate_errors("delete"):
            self._conn_for(key).delete(key)

    def exists(self, key: str) -> bool:
        with translate_errors("exists"):
            return bool(self._conn_for(key).exists(key))

    # Counters share the key space with hashes; a bucket is one or the other.
    def getc(self, key: str, expiry: Optional[int] = NEVER_EXPIRE) -> Optional[int]:
        value = self.get(key, expiry)
        return None if value is None else int(value)

    def setc(self, key: str, value: int, expiry: Optional[int] = NEVER_EXPIRE) -> Any:
        return write_with_expiry(self._conn_for(key), "set", key, int(value), expiry)

    def deletec(self, key: str) -> None:
        self.delete(key)

    def existsc(self, key: str) -> bool:
        return self.exists(key)

    def incrby(self, key: str, amount: int, expiry: Optional[int] = NEVER_EXPIRE) -> int:
        return int(write_with_expiry(self._conn_for(key), "incrby", key, int(amount), expiry))

    def decrby(self, key: str, amount: int, expiry: Optional[int] = NEVER_EXPIRE) -> int:
        return int(write_with_expiry(self._conn_for(key), "decrby", key, int(amount), expiry))

    # Expiry/TTL
    def expire(self, key: str, ttl: Any) -> Any:
        seconds = coerce_ttl(ttl)
        if seconds is NEVER_EXPIRE:
            return None
        with translate_errors("expire"):
            return self._conn_for(key).expire(key, seconds)

    def ttl(self, key: str) -> Optional[int]:
        with translate_errors("ttl"):
            return to_ttl(self._conn_for(key).ttl(key))

    # Connection
    def flush(self) -> None:
        with translate_errors("flushdb"):
            self.connection.flushdb()
