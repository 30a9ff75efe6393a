"""Test fixtures for Gnosis DeepLog tests."""

from dataclasses import dataclass
from types import SimpleNamespace

import pytest

from deeplog import DeepLogConfig
from deeplog.config import Config


@pytest.fixture(autouse=True)
def reset_config():
    """Give every test the default global configuration."""
    Config.reset()
    yield
    Config.reset()


@pytest.fixture
def sample_config():
    """Sample configuration for testing."""
    return DeepLogConfig(tree_mode="isolated", debug=True)


class Counter:
    """Small stateful object whose methods read their own attributes."""

    def __init__(self, start=0):
        self.count = start
        self.history = []

    def add(self, a, b=0):
        self.count += a + b
        self.history.append(a)
        return self.count

    def snapshot(self):
        return {"count": self.count}

    @property
    def doubled(self):
        return [self.count, self.count]

    @classmethod
    def create(cls, start):
        return cls(start)


@dataclass(frozen=True)
class FrozenSettings:
    """Frozen dataclass whose fields cannot be rebound."""

    name: str
    options: tuple
    limits: dict


@pytest.fixture
def counter():
    return Counter(1)


@pytest.fixture
def frozen_settings():
    return FrozenSettings(name="demo", options=("a", "b"), limits={"max": 3})


@pytest.fixture
def namespace():
    """Plain attribute bag, the closest thing to an object literal."""
    return SimpleNamespace(x=1, nested=SimpleNamespace(foo="bar"))
