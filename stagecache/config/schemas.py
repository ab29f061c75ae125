"""
stagecache - Configuration Schemas

Defines typed configuration models using Pydantic for validation and type safety.
All configuration must be defined here and validated at startup.
"""

import hashlib
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Variable-length digests cannot name files deterministically without extra parameters
_FIXED_LENGTH_DIGESTS = frozenset(
    name for name in hashlib.algorithms_guaranteed if not name.startswith("shake_")
)


class Environment(str, Enum):
    """Runtime environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    TEXT = "text"


class CacheConfig(BaseModel):
    """Filesystem cache configuration."""

    cache_dir: Path = Field(default=Path("./data/cache"), description="Directory holding cache files")
    metadata_filename: str = Field(default=".metadoc", description="Reserved filename of the metadata snapshot")
    min_free_bytes: int = Field(
        default=8,
        ge=0,
        description="Free disk space at or below this many bytes makes the cache unusable",
    )
    key_algorithm: str = Field(default="sha1", description="hashlib digest used to encode cache keys")
    read_cache_enabled: bool = Field(default=True, description="Memoize decoded values read from disk")

    @field_validator("cache_dir")
    @classmethod
    def expand_cache_dir(cls, v: Path) -> Path:
        """Expand a leading ~ so the directory matches what the shell means."""
        return v.expanduser()

    @field_validator("metadata_filename")
    @classmethod
    def validate_metadata_filename(cls, v: str) -> str:
        """Ensure the snapshot name is a bare filename inside the cache directory."""
        if not v or v in (".", "..") or "/" in v or "\\" in v:
            raise ValueError("metadata_filename must be a bare filename")
        return v

    @field_validator("key_algorithm")
    @classmethod
    def validate_key_algorithm(cls, v: str) -> str:
        """Only fixed-length digests can be used as filenames."""
        name = v.strip().lower()
        if name not in _FIXED_LENGTH_DIGESTS:
            raise ValueError(f"key_algorithm must be one of {sorted(_FIXED_LENGTH_DIGESTS)}")
        return name


class StageCacheConfig(BaseModel):
    """Root configuration for stagecache."""

    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Runtime environment")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_format: LogFormat = Field(default=LogFormat.JSON, description="Log output format")

    cache: CacheConfig = Field(default_factory=CacheConfig)

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)
