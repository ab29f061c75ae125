"""
stagecache - Cache Factory Integration Tests

Tests for the cache factory that creates and manages cache instances.
Tests singleton behavior, configuration, directory ownership and lifecycle.
"""

import hashlib
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from stagecache.cache.backends.filesystem import FileCacheBackend
from stagecache.cache.factory import (
    close_all_caches,
    create_cache,
    get_cache,
    list_cache_instances,
    reset_cache_factory,
)
from stagecache.cache.interface import CacheInterface
from stagecache.config import CacheConfig
from stagecache.errors import CacheConstructionError, ConfigurationError


class TestCacheFactory:
    """Test suite for cache factory functionality."""

    @pytest.fixture(autouse=True)  # type: ignore[misc]
    async def cleanup(self) -> AsyncGenerator[None, None]:  # type: ignore[misc]
        """Clean up cache instances after each test."""
        yield
        await close_all_caches()
        reset_cache_factory()

    @pytest.mark.usefixtures("mock_env_cache")
    async def test_create_cache_from_environment(self, cache_dir: Path) -> None:
        """Without explicit config the environment decides the directory."""
        cache = create_cache()

        assert isinstance(cache, CacheInterface)
        assert isinstance(cache, FileCacheBackend)
        assert cache.directory.path == cache_dir.resolve()

        await cache.set("test_key", "test_value")
        assert await cache.get("test_key") == "test_value"

    async def test_create_cache_explicit_config(self, tmp_path: Path) -> None:
        config = CacheConfig(cache_dir=tmp_path / "explicit", key_algorithm="sha256", read_cache_enabled=False)

        cache = create_cache(config=config, name="custom")

        assert isinstance(cache, FileCacheBackend)
        assert cache.encoder.algorithm == "sha256"
        assert cache.read_cache_enabled is False

    async def test_singleton_behavior(self, tmp_path: Path) -> None:
        """Factory returns the same instance for the same name."""
        config = CacheConfig(cache_dir=tmp_path / "one")
        cache1 = create_cache(config, name="singleton_test")
        cache2 = create_cache(config, name="singleton_test")

        assert cache1 is cache2

    async def test_multiple_named_instances(self, tmp_path: Path) -> None:
        cache1 = create_cache(CacheConfig(cache_dir=tmp_path / "a"), name="cache1")
        cache2 = create_cache(CacheConfig(cache_dir=tmp_path / "b"), name="cache2")

        assert cache1 is not cache2

        await cache1.set("key", "value1")
        await cache2.set("key", "value2")

        assert await cache1.get("key") == "value1"
        assert await cache2.get("key") == "value2"
        assert list_cache_instances() == ["cache1", "cache2"]

    async def test_second_writer_for_directory_rejected(self, tmp_path: Path) -> None:
        """Two live instances may not share a cache directory."""
        create_cache(CacheConfig(cache_dir=tmp_path / "shared"), name="first")

        with pytest.raises(ConfigurationError) as exc_info:
            create_cache(CacheConfig(cache_dir=tmp_path / "shared" / ".." / "shared"), name="second")

        assert exc_info.value.details["owner"] == "first"

    async def test_home_relative_directory(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A ~ path is expanded once, and the guard covers the directory actually used."""
        home = tmp_path / "home"
        home.mkdir()
        monkeypatch.setenv("HOME", str(home))
        monkeypatch.chdir(tmp_path)

        cache = create_cache(CacheConfig(cache_dir="~/sc"), name="home")

        assert isinstance(cache, FileCacheBackend)
        assert cache.directory.path == (home / "sc").resolve()
        assert (home / "sc").is_dir()
        assert not (tmp_path / "~").exists()

        with pytest.raises(ConfigurationError) as exc_info:
            create_cache(CacheConfig(cache_dir=home / "sc"), name="explicit")
        assert exc_info.value.details["owner"] == "home"

    async def test_invalid_key_algorithm_not_rewrapped(self, tmp_path: Path) -> None:
        """Bad digests reaching the backend surface as the encoder's own error."""
        config = CacheConfig(cache_dir=tmp_path / "digest").model_copy(update={"key_algorithm": "shake_128"})

        with pytest.raises(ConfigurationError) as exc_info:
            create_cache(config, name="digest")

        assert exc_info.value.details["key_algorithm"] == "shake_128"
        assert list_cache_instances() == []

    async def test_directory_released_after_close(self, tmp_path: Path) -> None:
        config = CacheConfig(cache_dir=tmp_path / "shared")
        create_cache(config, name="first")
        await close_all_caches()

        assert create_cache(config, name="second") is not None

    @pytest.mark.usefixtures("mock_env_cache")
    async def test_get_cache_creates_if_not_exists(self) -> None:
        cache = get_cache("new_instance")

        assert cache is get_cache("new_instance")
        assert "new_instance" in list_cache_instances()

    async def test_close_all_caches_flushes(self, tmp_path: Path) -> None:
        """Shutdown persists staged values of every instance."""
        cache_dir = tmp_path / "flushed"
        cache = create_cache(CacheConfig(cache_dir=cache_dir), name="flushed")
        await cache.set("k", [1, 2, 3])

        await close_all_caches()

        assert list_cache_instances() == []
        assert (cache_dir / hashlib.sha1(b"k").hexdigest()).read_bytes() == b"[1,2,3]"

        reopened = create_cache(CacheConfig(cache_dir=cache_dir), name="reopened")
        assert await reopened.get("k") == [1, 2, 3]

    async def test_clock_passed_through(self, tmp_path: Path) -> None:
        now = [1000.0]
        cache = create_cache(CacheConfig(cache_dir=tmp_path / "clocked"), name="clocked", clock=lambda: now[0])

        await cache.set("k", "v", ttl=10)
        now[0] += 10

        assert await cache.has("k") is False

    async def test_construction_fault_propagates(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(CacheConstructionError):
            create_cache(CacheConfig(cache_dir=blocker), name="broken")

        assert list_cache_instances() == []
