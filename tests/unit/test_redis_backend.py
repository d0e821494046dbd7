import threading

import pytest

from ephemera.backend.redis_backend import RedisBackend, RedisSettings, as_settings
from ephemera.exceptions import BackendError, ConfigurationError
from tests.helpers import FakeRedis


def make(**options):
    client = FakeRedis()
    be = RedisBackend(RedisSettings(**options), client_factory=lambda settings: client)
    return be, client


def test_plain_write_is_a_single_command():
    be, client = make()
    assert be.set("Thing-1", "{}") is True
    assert be.get("Thing-1") == "{}"
    assert client.transactions == []
    assert be.ttl("Thing-1") is None


def test_write_with_expiry_runs_in_one_transaction():
    be, client = make()
    be.set("Thing-1", "{}", 60)
    assert client.transactions == [["set", "expire"]]
    assert be.ttl("Thing-1") == 60


def test_counter_write_returns_increment_result():
    be, client = make()
    assert be.incrby("hits", 5, 30) == 5
    assert be.decrby("hits", 2, 30) == 3
    assert client.transactions == [["incrby", "expire"], ["decrby", "expire"]]
    assert be.incr("hits") == 4
    assert be.decr("hits") == 3
    assert be.getc("hits") == 3
    assert isinstance(be.getc("hits"), int)


def test_counters_share_the_key_space():
    be, _ = make()
    be.setc("c", 9)
    assert be.existsc("c")
    assert be.exists("c")
    be.deletec("c")
    assert be.getc("c") is None


def test_ttl_maps_missing_and_unset_to_none():
    be, client = make()
    assert be.ttl("missing") is None
    be.set("k", "v")
    assert be.ttl("k") is None
    assert be.expire("k", 10) is True
    assert be.ttl("k") == 10
    client.clock.advance(10)
    assert be.get("k") is None


def test_expire_never_is_a_noop():
    be, client = make()
    be.set("k", "v")
    assert be.expire("k", None) is None
    assert "expire" not in client.calls


def test_expire_rejects_non_numeric_ttl():
    be, _ = make()
    with pytest.raises(ConfigurationError):
        be.expire("k", "later")
    with pytest.raises(ConfigurationError):
        be.set("k", "v", "later")


def test_driver_errors_become_backend_errors():
    be, client = make()
    client.fail = True
    with pytest.raises(BackendError):
        be.get("k")
    with pytest.raises(BackendError):
        be.set("k", "v", 10)
    with pytest.raises(BackendError):
        be.flush()


def test_flush_clears_database():
    be, client = make()
    be.set("a", "1")
    be.flush()
    assert client.data == {}


def test_connection_is_shared_between_equal_backends():
    created = []

    def factory(settings):
        created.append(settings)
        return FakeRedis()

    a = RedisBackend({"db": 3}, client_factory=factory)
    b = RedisBackend({"db": 3}, client_factory=factory)
    assert a.connection is b.connection
    assert a.config_key == b.config_key
    assert len(created) == 1
    assert RedisBackend({"db": 4}).config_key != a.config_key


def test_thread_safe_backend_uses_one_client_per_thread():
    be = RedisBackend(RedisSettings(thread_safe=True), client_factory=lambda settings: FakeRedis())
    seen = []
    barrier = threading.Barrier(3)

    def work():
        seen.append(be.connection)
        barrier.wait()
        seen.append(be.connection)

    threads = [threading.Thread(target=work) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len({id(c) for c in seen}) == 3


def test_settings_from_options_and_urls():
    assert RedisBackend(host="cache", db=2).settings.db == 2
    assert as_settings("redis://cache:6380/1").url == "redis://cache:6380/1"
    assert as_settings(None) == RedisSettings()
    kwargs = RedisSettings(password="s3cret", thread_safe=True).client_kwargs()
    assert kwargs == {"host": "localhost", "port": 6379, "db": 0, "password": "s3cret"}
