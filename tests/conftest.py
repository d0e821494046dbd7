"""Pytest configuration helpers for test collection.

Ensure the project root is on sys.path so tests can import the package
without requiring PYTHONPATH to be set externally, and give every test a
clean global configuration.
"""
import sys
from pathlib import Path

import pytest


def pytest_configure(config):
    # Insert repo root (one level up from tests/) to sys.path
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root))


@pytest.fixture(autouse=True)
def reset_config():
    from ephemera.backend.connections import registry
    from ephemera.config import Config

    Config.reset()
    registry.clear()
    yield
    Config.reset()
    registry.clear()


@pytest.fixture
def clock():
    from tests.helpers import FakeClock
    return FakeClock()


@pytest.fixture
def backend(clock):
    from ephemera.backend.memory_backend import MemoryBackend
    from ephemera.config import Config

    be = MemoryBackend(clock=clock)
    Config.backend = be
    return be
