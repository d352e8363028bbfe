"""
Unit tests for configuration.
"""

import pytest

from photovault.config import (
    DEFAULT_ALLOWED_MIME_TYPES,
    MIB,
    Config,
    IngestionSettings,
    get_database_path,
    get_gcs_bucket,
    get_project_id,
)


class TestConfig:
    """Test cases for Config."""

    def test_get_with_cast(self):
        config = Config({"PREVIEW_WIDTH": "320", "DEBUG": "yes", "RATIO": "1.5"})

        assert config.get("PREVIEW_WIDTH", 300, int) == 320
        assert config.get("DEBUG", False, bool) is True
        assert config.get("RATIO", 1.0, float) == 1.5
        assert config.get("MISSING", "fallback") == "fallback"

    def test_invalid_cast_falls_back_to_default(self):
        config = Config({"PREVIEW_WIDTH": "wide"})

        assert config.get("PREVIEW_WIDTH", 300, int) == 300

    def test_values_are_cached(self):
        environ = {"LOG_LEVEL": "INFO"}
        config = Config(environ)
        assert config.get("LOG_LEVEL") == "INFO"

        environ["LOG_LEVEL"] = "DEBUG"
        assert config.get("LOG_LEVEL") == "INFO"

    def test_get_list(self):
        config = Config({"ALLOWED_MIME_TYPES": " image/png, ,image/jpeg "})

        assert config.get_list("ALLOWED_MIME_TYPES") == ("image/png", "image/jpeg")
        assert config.get_list("MISSING", ("x",)) == ("x",)

    def test_get_required(self):
        with pytest.raises(ValueError, match="GCS_PHOTOS_BUCKET"):
            Config({"GCS_PHOTOS_BUCKET": ""}).get_required("GCS_PHOTOS_BUCKET")

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("GCS_PHOTOS_BUCKET", "env-bucket")

        assert Config().get("GCS_PHOTOS_BUCKET") == "env-bucket"

    @pytest.mark.parametrize(
        ("environment", "development"),
        [("development", True), ("test", True), ("production", False), ("staging", False)],
    )
    def test_is_development(self, environment, development):
        config = Config({"ENVIRONMENT": environment})

        assert config.is_development() is development

    def test_accessors(self):
        config = Config({"GCS_PHOTOS_BUCKET": "b", "GOOGLE_CLOUD_PROJECT": "p"})

        assert get_gcs_bucket(config) == "b"
        assert get_project_id(config) == "p"
        assert get_database_path(config) == "data/photovault.duckdb"


class TestIngestionSettings:
    """Test cases for IngestionSettings."""

    def test_defaults(self):
        settings = IngestionSettings.from_config(Config({}))

        assert settings == IngestionSettings()
        assert (settings.preview_width, settings.preview_quality, settings.preview_effort) == (300, 40, 6)
        assert (settings.full_width, settings.full_quality, settings.full_effort) == (2000, 75, 4)
        assert settings.max_upload_bytes == 10 * MIB
        assert settings.max_upload_mib == 10
        assert settings.allowed_mime_types == frozenset(DEFAULT_ALLOWED_MIME_TYPES)
        assert settings.signed_url_ttl_seconds == 3600
        assert settings.upload_concurrency == 2

    def test_from_config_overrides(self):
        settings = IngestionSettings.from_config(
            Config(
                {
                    "PREVIEW_WIDTH": "256",
                    "FULL_QUALITY": "90",
                    "MAX_FILE_SIZE_MB": "2.5",
                    "ALLOWED_MIME_TYPES": "IMAGE/PNG,image/jpeg",
                    "SIGNED_URL_EXPIRATION": "900",
                }
            )
        )

        assert settings.preview_width == 256
        assert settings.full_quality == 90
        assert settings.max_upload_bytes == int(2.5 * MIB)
        assert settings.allowed_mime_types == frozenset({"image/png", "image/jpeg"})
        assert settings.signed_url_ttl_seconds == 900

    @pytest.mark.parametrize(
        "overrides",
        [
            {"preview_width": 0},
            {"full_width": -1},
            {"preview_quality": 101},
            {"full_quality": -1},
            {"preview_effort": 7},
            {"max_upload_bytes": 0},
            {"upload_concurrency": 0},
            {"allowed_mime_types": frozenset()},
        ],
    )
    def test_invalid_settings(self, overrides):
        with pytest.raises(ValueError):
            IngestionSettings(**overrides)
