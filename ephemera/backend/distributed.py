"""Client-side sharding across several Redis servers.

    backend = DistributedRedisBackend([
        {"host": "localhost", "port": 6379},
        {"host": "localhost", "port": 6380},
    ])

Keys are placed on nodes with a consistent hash ring, so adding a node only
moves a fraction of the keys. Pair it with the Multi backend to migrate
from a single server to a sharded setup.
"""
from __future__ import annotations

import bisect
import logging
import zlib
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..exceptions import ConfigurationError
from .base import config_digest
from .connections import registry
from .redis_backend import RedisBackend, RedisSettings, as_settings, default_client, translate_errors

logger = logging.getLogger(__name__)

POINTS_PER_NODE = 160


class HashRing:
    """Consistent hash ring over node identifiers using CRC32."""

    def __init__(self, nodes: Sequence[str], replicas: int = POINTS_PER_NODE) -> None:
        self.replicas = replicas
        self._ring: Dict[int, str] = {}
        self._points: List[int] = []
        for node in nodes:
            self.add_node(node)

    def add_node(self, node: str) -> None:
        for i in range(self.replicas):
            point = zlib.crc32(f"{node}:{i}".encode("utf-8"))
            self._ring[point] = node
            bisect.insort(self._points, point)

    def node_for(self, key: str) -> str:
        if not self._points:
            raise ConfigurationError("Hash ring has no nodes")
        point = zlib.crc32(key.encode("utf-8"))
        idx = bisect.bisect_right(self._points, point) % len(self._points)
        return self._ring[self._points[idx]]


class DistributedRedisBackend(RedisBackend):
    def __init__(
        self,
        nodes: Sequence[Any],
        client_factory: Optional[Callable[[RedisSettings], Any]] = None,
        thread_safe: bool = False,
    ) -> None:
        if not nodes:
            raise ConfigurationError("DistributedRedisBackend needs at least one node")
        self.nodes: List[RedisSettings] = [as_settings(n) for n in nodes]
        self.thread_safe = thread_safe or any(n.thread_safe for n in self.nodes)
        self._client_factory = client_factory or default_client
        self._node_keys = [config_digest("redis", n.model_dump()) for n in self.nodes]
        self._by_key = dict(zip(self._node_keys, self.nodes))
        self._ring = HashRing(self._node_keys)
        self._config_key = config_digest("distributed", [n.model_dump() for n in self.nodes])

    @property
    def connection(self) -> Any:
        raise AttributeError("DistributedRedisBackend has one connection per node; use node_for(key)")

    def _node_connection(self, node_key: str) -> Any:
        settings = self._by_key[node_key]
        return registry.acquire(
            node_key,
            lambda: self._client_factory(settings),
            per_thread=self.thread_safe,
        )

    def node_for(self, key: str) -> Any:
        return self._node_connection(self._ring.node_for(key))

    def _conn_for(self, key: str) -> Any:
        return self.node_for(key)

    def flush(self) -> None:
        for node_key in self._node_keys:
            with translate_errors("flushdb"):
                self._node_connection(node_key).flushdb()
