"""Process-wide configuration.

Set the backend once at startup::

    Config.backend = RedisBackend({"host": "localhost", "port": 6379})

or load it from YAML::

    # ephemera.yml
    log_level: INFO
    backend:
      backend: multi
      backends:
        - backend: redis
          db: 11
        - backend: redis
          db: 10

    Config.load("ephemera.yml")
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import yaml

from .backend import create_backend
from .backend.interfaces import BackendProtocol
from .exceptions import ConfigurationError
from .serializer import JSONSerializer

logger = logging.getLogger(__name__)


def load_yaml_file(path: Path) -> dict:
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


class Config:
    backend: Optional[BackendProtocol] = None
    serializer: JSONSerializer = JSONSerializer()

    @classmethod
    def current_backend(cls) -> BackendProtocol:
        if cls.backend is None:
            raise ConfigurationError("No backend configured; set Config.backend first")
        return cls.backend

    @classmethod
    def load(cls, path: str | Path) -> BackendProtocol:
        """Configure the backend from the ``backend`` section of a YAML file."""
        cfg = load_yaml_file(Path(path))
        options: Any = cfg.get("backend")
        if not isinstance(options, dict):
            raise ConfigurationError(f"{path}: missing 'backend' section")
        cls.backend = create_backend(**options)
        logger.info("Configured backend %r from %s", cls.backend, path)
        return cls.backend

    @classmethod
    def reset(cls) -> None:
        cls.backend = None
        cls.serializer = JSONSerializer()
