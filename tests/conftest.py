"""
stagecache - Test Configuration and Shared Fixtures

Provides pytest configuration and shared fixtures for unit and integration tests.
"""

import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"


class FakeClock:
    """Controllable Unix clock for TTL tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """A fake clock starting at a fixed timestamp."""
    return FakeClock()


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """A fresh, not yet created cache directory."""
    return tmp_path / "cache"


@pytest.fixture  # type: ignore[misc]
def mock_env_cache(monkeypatch: pytest.MonkeyPatch, cache_dir: Path) -> None:
    """Point the environment-driven configuration at a temporary directory."""
    monkeypatch.setenv("CACHE_DIR", str(cache_dir))
    monkeypatch.setenv("CACHE_METADATA_FILE", ".metadoc")
    monkeypatch.setenv("CACHE_MIN_FREE_BYTES", "8")
    monkeypatch.setenv("CACHE_KEY_ALGORITHM", "sha1")
    monkeypatch.setenv("CACHE_READ_CACHE", "true")


@pytest.fixture  # type: ignore[misc]
def sample_cache_data() -> dict[str, Any]:
    """Sample data for cache testing."""
    return {
        "simple_string": "hello",
        "simple_int": 42,
        "simple_float": 3.14,
        "simple_bool": True,
        "simple_none": None,
        "complex_dict": {
            "nested": {
                "key": "value",
                "number": 123,
                "list": [1, 2, 3],
            }
        },
        "complex_list": [
            {"id": 1, "name": "Alice"},
            {"id": 2, "name": "Bob"},
        ],
    }


@pytest.fixture(autouse=True)  # type: ignore[misc]
def reset_cache_factory() -> Generator[None, None, None]:
    """Reset cache factory and config singleton after each test to prevent state leakage."""
    yield
    from stagecache.cache.factory import reset_cache_factory
    from stagecache.config import loader

    reset_cache_factory()
    loader._config_instance = None
