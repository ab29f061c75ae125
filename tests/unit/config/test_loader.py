"""
stagecache - Configuration Loader Tests
"""

import os
from pathlib import Path

import pytest

from stagecache.config import CacheConfig, get_config, load_config, reload_config
from stagecache.errors import ConfigurationError, ErrorCode


class TestLoadConfig:
    """Test suite for environment-driven configuration."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        for name in ("CACHE_DIR", "CACHE_METADATA_FILE", "CACHE_MIN_FREE_BYTES", "CACHE_KEY_ALGORITHM"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.chdir(tmp_path)

        config = load_config(reload=True)

        assert config.cache.cache_dir == Path("./data/cache")
        assert config.cache.metadata_filename == ".metadoc"
        assert config.cache.min_free_bytes == 8
        assert config.cache.key_algorithm == "sha1"
        assert config.cache.read_cache_enabled is True
        assert config.environment == "test"

    @pytest.mark.usefixtures("mock_env_cache")
    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch, cache_dir: Path) -> None:
        monkeypatch.setenv("CACHE_KEY_ALGORITHM", "SHA256")
        monkeypatch.setenv("CACHE_READ_CACHE", "false")
        monkeypatch.setenv("LOG_FORMAT", "TEXT")

        config = load_config(reload=True)

        assert config.cache.cache_dir == cache_dir
        assert config.cache.key_algorithm == "sha256"
        assert config.cache.read_cache_enabled is False
        assert config.log_format == "text"

    def test_dotenv_file(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        env_file = tmp_path / "custom.env"
        env_file.write_text("CACHE_METADATA_FILE=.index\nCACHE_MIN_FREE_BYTES=4096\n")
        monkeypatch.delenv("CACHE_METADATA_FILE", raising=False)
        monkeypatch.delenv("CACHE_MIN_FREE_BYTES", raising=False)

        try:
            config = reload_config(env_file=str(env_file))
            assert config.cache.metadata_filename == ".index"
            assert config.cache.min_free_bytes == 4096
        finally:
            # load_dotenv writes os.environ directly
            os.environ.pop("CACHE_METADATA_FILE", None)
            os.environ.pop("CACHE_MIN_FREE_BYTES", None)

    def test_singleton(self) -> None:
        assert get_config() is get_config()

    def test_invalid_number(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CACHE_MIN_FREE_BYTES", "plenty")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(reload=True)

        assert exc_info.value.error_code is ErrorCode.CONFIGURATION_ERROR

    def test_invalid_algorithm(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CACHE_KEY_ALGORITHM", "shake_128")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(reload=True)

        assert "validation_errors" in exc_info.value.details


class TestCacheConfig:
    """Test suite for CacheConfig validation."""

    @pytest.mark.parametrize("name", ["", ".", "..", "nested/meta", "a\\b"])
    def test_metadata_filename_must_be_bare(self, name: str) -> None:
        with pytest.raises(ValueError):
            CacheConfig(metadata_filename=name)

    def test_negative_free_space_rejected(self) -> None:
        with pytest.raises(ValueError):
            CacheConfig(min_free_bytes=-1)
