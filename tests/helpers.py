"""Test doubles shared by the test modules."""
from typing import Any, Dict, List

import redis


class FakeClock:
    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePipeline:
    def __init__(self, client: "FakeRedis", transaction: bool):
        self.client = client
        self.transaction = transaction
        self.queue: List[Any] = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.queue = []
        return False

    def __getattr__(self, name):
        method = getattr(self.client, name)

        def queued(*args, **kwargs):
            self.queue.append((method, args, kwargs))
            return self
        return queued

    def execute(self):
        if self.transaction:
            self.client.transactions.append([m.__name__ for m, _, _ in self.queue])
        results = [m(*a, **kw) for m, a, kw in self.queue]
        self.queue = []
        return results


class FakeRedis:
    """Subset of redis.Redis (decode_responses=True) used by the backends.

    Mirrors the Redis behaviours the backends rely on: SET drops a TTL,
    INCRBY keeps it, a non-positive EXPIRE deletes the key, TTL answers -1
    without expiry and -2 for a missing key.
    """

    def __init__(self, clock=None):
        self.clock = clock or FakeClock()
        self.data: Dict[str, str] = {}
        self.expires: Dict[str, float] = {}
        self.calls: List[str] = []
        self.transactions: List[List[str]] = []
        self.fail = False

    def _call(self, name):
        self.calls.append(name)
        if self.fail:
            raise redis.ConnectionError("Connection refused")

    def _reap(self, key):
        at = self.expires.get(key)
        if at is not None and at <= self.clock():
            self.data.pop(key, None)
            self.expires.pop(key, None)

    def get(self, key):
        self._call("get")
        self._reap(key)
        return self.data.get(key)

    def set(self, key, value):
        self._call("set")
        self.data[key] = str(value)
        self.expires.pop(key, None)
        return True

    def delete(self, *keys):
        self._call("delete")
        removed = 0
        for key in keys:
            self._reap(key)
            if self.data.pop(key, None) is not None:
                removed += 1
            self.expires.pop(key, None)
        return removed

    def exists(self, *keys):
        self._call("exists")
        count = 0
        for key in keys:
            self._reap(key)
            count += key in self.data
        return count

    def incrby(self, key, amount=1):
        self._call("incrby")
        self._reap(key)
        value = int(self.data.get(key, 0)) + int(amount)
        self.data[key] = str(value)
        return value

    def decrby(self, key, amount=1):
        self._call("decrby")
        self._reap(key)
        value = int(self.data.get(key, 0)) - int(amount)
        self.data[key] = str(value)
        return value

    def expire(self, key, seconds):
        self._call("expire")
        self._reap(key)
        if key not in self.data:
            return False
        if int(seconds) <= 0:
            self.data.pop(key, None)
            self.expires.pop(key, None)
            return True
        self.expires[key] = self.clock() + int(seconds)
        return True

    def ttl(self, key):
        self._call("ttl")
        self._reap(key)
        if key not in self.data:
            return -2
        if key not in self.expires:
            return -1
        return int(self.expires[key] - self.clock())

    def flushdb(self):
        self._call("flushdb")
        self.data.clear()
        self.expires.clear()
        return True

    def pipeline(self, transaction=True):
        return FakePipeline(self, transaction)


class Thing:
    """A minimal host object with an id."""

    def __init__(self, id=1):
        self.id = id
