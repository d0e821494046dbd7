import pytest

from ephemera.backend import (
    DistributedRedisBackend,
    FileBackend,
    MemoryBackend,
    Multi,
    RedisBackend,
    create_backend,
)
from ephemera.backend.interfaces import BackendProtocol
from ephemera.config import Config
from ephemera.exceptions import ConfigurationError, DuplicateBackendError


def test_create_backend_kinds(tmp_path):
    assert isinstance(create_backend(), MemoryBackend)
    assert isinstance(create_backend("file", data_dir=str(tmp_path)), FileBackend)
    redis_be = create_backend("redis", host="cache", db=11)
    assert isinstance(redis_be, RedisBackend)
    assert redis_be.settings.db == 11
    dist = create_backend("distributed", nodes=[{"port": 6379}, {"port": 6380}])
    assert isinstance(dist, DistributedRedisBackend)
    multi = create_backend("multi", backends=[{"backend": "redis", "db": 11}, {"backend": "redis", "db": 10}])
    assert isinstance(multi, Multi)
    assert multi.primary.settings.db == 11
    assert isinstance(multi, BackendProtocol)


def test_create_backend_rejects_bad_options():
    with pytest.raises(ConfigurationError):
        create_backend("riak")
    with pytest.raises(ConfigurationError):
        create_backend("distributed")
    with pytest.raises(ConfigurationError):
        create_backend("multi", backends=[])
    with pytest.raises(DuplicateBackendError):
        create_backend("multi", backends=[{"backend": "redis"}, {"backend": "redis"}])


def test_config_requires_backend():
    with pytest.raises(ConfigurationError):
        Config.current_backend()


def test_config_load_from_yaml(tmp_path):
    cfg = tmp_path / "ephemera.yml"
    cfg.write_text(
        "backend:\n"
        "  backend: multi\n"
        "  backends:\n"
        "    - backend: memory\n"
        "      name: new\n"
        "    - backend: file\n"
        f"      data_dir: {tmp_path / 'old'}\n"
    )
    backend = Config.load(cfg)
    assert Config.current_backend() is backend
    assert isinstance(backend.primary, MemoryBackend)
    assert isinstance(backend.others[0], FileBackend)


def test_config_load_without_backend_section(tmp_path):
    cfg = tmp_path / "ephemera.yml"
    cfg.write_text("log_level: DEBUG\n")
    with pytest.raises(ConfigurationError):
        Config.load(cfg)
    with pytest.raises(ConfigurationError):
        Config.load(tmp_path / "missing.yml")
