"""
Test suite for configuration management.

Verifies environment-derived settings, validation, and per-application overrides.
"""

import pytest
from pydantic import ValidationError

from db_snapshot.config.settings import (
    APIConfig,
    DatabaseConfig,
    S3Config,
    Settings,
    StorageConfig,
    get_settings,
    reload_settings,
    targets_from_env,
)

ENV_KEYS = (
    "DB_HOST", "DB_PORT", "DB_USER", "DB_PASSWORD", "DB_NAME", "DB_PROBE_TIMEOUT",
    "STORAGE_MODE", "LOCAL_SNAPSHOT_DIR", "LOCAL_SAVE_FORMAT",
    "S3_BUCKET", "AWS_REGION", "S3_PREFIX", "API_PORT", "API_LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestConfiguration:
    """Test the configuration system."""

    def test_defaults(self, clean_env):
        settings = Settings()

        assert settings.database.host == "localhost"
        assert settings.database.port == 3306
        assert settings.database.user == "admin"
        assert settings.database.name is None
        assert settings.database.probe_timeout == 30
        assert settings.storage.mode == "local"
        assert settings.storage.local_dir == "./snapshots"
        assert settings.storage.local_format == "both"
        assert settings.s3.region == "ap-northeast-2"
        assert settings.s3.prefix == "db-snapshots"
        assert settings.api.port == 8000
        assert settings.api.default_application == "dev"

    def test_loads_from_env_vars(self, clean_env):
        clean_env.setenv("DB_HOST", "mariadb.internal")
        clean_env.setenv("DB_PORT", "3307")
        clean_env.setenv("DB_NAME", "shop")
        clean_env.setenv("STORAGE_MODE", "BOTH")
        clean_env.setenv("LOCAL_SAVE_FORMAT", "json")
        clean_env.setenv("S3_BUCKET", "incidents")
        clean_env.setenv("S3_PREFIX", "/snapshots/db/")

        settings = Settings()

        assert settings.database.host == "mariadb.internal"
        assert settings.database.port == 3307
        assert settings.database.name == "shop"
        assert settings.storage.mode == "both"
        assert settings.storage.uses_local and settings.storage.uses_s3
        assert settings.storage.local_format == "json"
        assert settings.s3.bucket == "incidents"
        assert settings.s3.prefix == "snapshots/db"

    def test_empty_db_name_is_none(self, clean_env):
        clean_env.setenv("DB_NAME", "")
        assert DatabaseConfig().name is None

    @pytest.mark.parametrize("key, value, field", [
        ("STORAGE_MODE", "ftp", "mode"),
        ("LOCAL_SAVE_FORMAT", "xml", "local_format"),
    ])
    def test_invalid_storage_values_are_rejected(self, clean_env, key, value, field):
        clean_env.setenv(key, value)
        with pytest.raises(ValidationError) as exc_info:
            StorageConfig()
        assert field in str(exc_info.value)

    def test_invalid_log_level_is_rejected(self, clean_env):
        clean_env.setenv("API_LOG_LEVEL", "LOUD")
        with pytest.raises(ValidationError) as exc_info:
            APIConfig()
        assert "log_level" in str(exc_info.value).lower()

    def test_storage_mode_flags(self):
        assert StorageConfig(mode="local").uses_s3 is False
        assert StorageConfig(mode="s3").uses_local is False

    def test_reload_settings(self, clean_env):
        first = get_settings()
        assert get_settings() is first

        clean_env.setenv("S3_BUCKET", "reloaded")
        reloaded = reload_settings()

        assert reloaded is not first
        assert reloaded.s3.bucket == "reloaded"
        assert S3Config().bucket == "reloaded"


class TestTargetOverrides:
    """DB_<APP>_* variables build the per-application table."""

    def test_targets_from_env(self):
        targets = targets_from_env({
            "DB_STG_HOST": "db.stg.internal",
            "DB_STG_PORT": "3307",
            "DB_STG_USER": "reader",
            "DB_MY_APP_HOST": "db.myapp.internal",
            "DB_MY_APP_NAME": "myapp",
            "DB_PROD_USER": "orphan",
            "DB_HOST": "ignored",
            "DB_PROBE_TIMEOUT": "30",
            "PATH": "/usr/bin",
        })

        assert set(targets) == {"stg", "my_app"}
        assert targets["stg"].host == "db.stg.internal"
        assert targets["stg"].port == 3307
        assert targets["stg"].user == "reader"
        assert targets["stg"].password is None
        assert targets["my_app"].database == "myapp"

    def test_empty_host_does_not_define_a_target(self):
        assert targets_from_env({"DB_QA_HOST": "", "DB_QA_USER": "qa"}) == {}

    def test_invalid_port_falls_back_with_warning(self, caplog):
        with caplog.at_level("WARNING", logger="db_snapshot.config.settings"):
            targets = targets_from_env({"DB_QA_HOST": "h", "DB_QA_PORT": "x"})

        assert targets["qa"].port is None
        assert any("DB_QA_PORT='x'" in r.getMessage() for r in caplog.records)

    def test_database_config_reads_targets_from_environment(self, clean_env):
        clean_env.setenv("DB_STG_HOST", "db.stg.internal")
        assert DatabaseConfig().targets["stg"].host == "db.stg.internal"
