"""Configuration management for photovault.

Configuration comes from environment variables. ``Config`` handles lookup,
type casting and caching; ``IngestionSettings`` gathers the knobs that shape
the ingestion pipeline into one validated, immutable object that is passed
to the services explicitly.
"""

import os
from dataclasses import dataclass, field
from typing import Any

from .logging_config import get_logger

logger = get_logger(__name__)

MIB = 1024 * 1024

DEFAULT_ALLOWED_MIME_TYPES = (
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
    "image/heic",
    "image/heif",
)


class Config:
    """Centralized configuration management using environment variables."""

    def __init__(self, environ: dict[str, str] | None = None):
        """
        Initialize configuration.

        Args:
            environ: Mapping to read from instead of ``os.environ`` (tests)
        """
        self._environ = environ
        self._cache: dict[str, Any] = {}

    def _lookup(self, key: str) -> str | None:
        if self._environ is not None:
            return self._environ.get(key)
        return os.getenv(key)

    def get(self, key: str, default: Any = None, cast_type: type = str) -> Any:
        """Get a configuration value.

        Args:
            key: Configuration key
            default: Default value if not found
            cast_type: Type to cast the value to (str, int, bool, float)

        Returns:
            Configuration value cast to the specified type
        """
        cache_key = f"{key}:{cast_type.__name__}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        value = self._lookup(key)
        if value is None:
            value = default

        if value is not None:
            try:
                if cast_type is bool:
                    if isinstance(value, str):
                        value = value.strip().lower() in ("true", "1", "yes", "on")
                    else:
                        value = bool(value)
                elif cast_type is not str:
                    value = cast_type(value)
            except (ValueError, TypeError) as e:
                logger.warning("config_cast_failed", key=key, cast_type=cast_type.__name__, error=str(e))
                value = default

        self._cache[cache_key] = value
        return value

    def get_list(self, key: str, default: tuple[str, ...] = ()) -> tuple[str, ...]:
        """Get a comma-separated configuration value as a tuple of stripped, non-empty items."""
        raw = self.get(key)
        if raw is None:
            return default
        items = tuple(item.strip() for item in str(raw).split(",") if item.strip())
        return items or default

    def get_required(self, key: str, cast_type: type = str) -> Any:
        """Get required configuration value.

        Raises:
            ValueError: If the required configuration is not found
        """
        value = self.get(key, cast_type=cast_type)
        if value is None or value == "":
            raise ValueError(f"Required configuration '{key}' not found")
        return value

    def is_development(self) -> bool:
        """Check if running in development mode."""
        environment = str(self.get("ENVIRONMENT", "development")).lower()
        return environment in ("development", "dev", "local", "test")


@dataclass(frozen=True)
class IngestionSettings:
    """Settings that shape image ingestion."""

    preview_width: int = 300
    preview_quality: int = 40
    preview_effort: int = 6
    full_width: int = 2000
    full_quality: int = 75
    full_effort: int = 4
    max_upload_bytes: int = 10 * MIB
    allowed_mime_types: frozenset[str] = field(default_factory=lambda: frozenset(DEFAULT_ALLOWED_MIME_TYPES))
    signed_url_ttl_seconds: int = 3600
    upload_concurrency: int = 2

    def __post_init__(self) -> None:
        for name in ("preview_width", "full_width", "max_upload_bytes", "signed_url_ttl_seconds", "upload_concurrency"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        for name in ("preview_quality", "full_quality"):
            if not 0 <= getattr(self, name) <= 100:
                raise ValueError(f"{name} must be between 0 and 100, got {getattr(self, name)}")
        for name in ("preview_effort", "full_effort"):
            if not 0 <= getattr(self, name) <= 6:
                raise ValueError(f"{name} must be between 0 and 6, got {getattr(self, name)}")
        if not self.allowed_mime_types:
            raise ValueError("allowed_mime_types must not be empty")

    @property
    def max_upload_mib(self) -> float:
        return self.max_upload_bytes / MIB

    @classmethod
    def from_config(cls, config: Config) -> "IngestionSettings":
        """Build settings from environment-style configuration."""
        return cls(
            preview_width=config.get("PREVIEW_WIDTH", 300, int),
            preview_quality=config.get("PREVIEW_QUALITY", 40, int),
            preview_effort=config.get("PREVIEW_EFFORT", 6, int),
            full_width=config.get("FULL_WIDTH", 2000, int),
            full_quality=config.get("FULL_QUALITY", 75, int),
            full_effort=config.get("FULL_EFFORT", 4, int),
            max_upload_bytes=int(config.get("MAX_FILE_SIZE_MB", 10, float) * MIB),
            allowed_mime_types=frozenset(
                mime.lower() for mime in config.get_list("ALLOWED_MIME_TYPES", DEFAULT_ALLOWED_MIME_TYPES)
            ),
            signed_url_ttl_seconds=config.get("SIGNED_URL_EXPIRATION", 3600, int),
            upload_concurrency=config.get("UPLOAD_CONCURRENCY", 2, int),
        )


# Global configuration instance
_config: Config | None = None


def get_config() -> Config:
    """Get the process-wide environment configuration."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_gcs_bucket(config: Config | None = None) -> str:
    """Get GCS photos bucket name."""
    return str((config or get_config()).get_required("GCS_PHOTOS_BUCKET"))


def get_project_id(config: Config | None = None) -> str:
    """Get Google Cloud project ID."""
    return str((config or get_config()).get_required("GOOGLE_CLOUD_PROJECT"))


def get_database_path(config: Config | None = None) -> str:
    """Get the DuckDB database file path."""
    return str((config or get_config()).get("DATABASE_PATH", "data/photovault.duckdb"))
