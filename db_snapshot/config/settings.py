"""
Centralized Configuration Management for the DB snapshot collector.

Uses Pydantic Settings for type-safe environment variable loading.
The settings value is built once at startup and handed to each component.
"""

import logging
import os
import re
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


load_dotenv()

logger = logging.getLogger(__name__)

# DB_<APP>_HOST, DB_<APP>_PORT, ... (APP may itself contain underscores)
_TARGET_ENV_PATTERN = re.compile(r"^DB_(?P<app>.+)_(?P<field>HOST|PORT|USER|PASSWORD|NAME)$")

STORAGE_MODES = ("local", "s3", "both")
LOCAL_SAVE_FORMATS = ("json", "txt", "both")


class TargetOverride(BaseModel):
    """Connection overrides for one monitored application."""

    host: str = Field(..., description="Database host for this application")
    port: Optional[int] = Field(default=None, description="Port, falls back to DB_PORT")
    user: Optional[str] = Field(default=None, description="User, falls back to DB_USER")
    password: Optional[str] = Field(default=None, description="Password, falls back to DB_PASSWORD")
    database: Optional[str] = Field(default=None, description="Schema, falls back to DB_NAME")

    model_config = {"frozen": True}


def targets_from_env(environ: Optional[Mapping[str, str]] = None) -> Dict[str, TargetOverride]:
    """Collect per-application overrides from DB_<APP>_* variables.

    An application only exists when its HOST variable is set and non-empty.
    """
    environ = os.environ if environ is None else environ
    fields: Dict[str, Dict[str, str]] = {}
    for key, value in environ.items():
        match = _TARGET_ENV_PATTERN.match(key.upper())
        if not match or value == "":
            continue
        app = match.group("app").lower()
        fields.setdefault(app, {})[match.group("field").lower()] = value

    targets: Dict[str, TargetOverride] = {}
    for app, values in fields.items():
        if "host" not in values:
            continue
        port = values.get("port")
        if port is not None and not port.isdigit():
            logger.warning(f"Ignoring non-numeric DB_{app.upper()}_PORT={port!r}; using DB_PORT")
            port = None
        targets[app] = TargetOverride(
            host=values["host"],
            port=int(port) if port else None,
            user=values.get("user"),
            password=values.get("password"),
            database=values.get("name"),
        )
    return targets


class DatabaseConfig(BaseSettings):
    """Default MariaDB connection settings plus per-application overrides."""

    host: str = Field(default="localhost", description="Default database host")
    port: int = Field(default=3306, description="Default database port")
    user: str = Field(default="admin", description="Default database user")
    password: str = Field(default="", description="Default database password")
    name: Optional[str] = Field(default=None, description="Default schema (optional)")
    connect_timeout: int = Field(default=10, description="Connection timeout in seconds")
    probe_timeout: int = Field(default=30, description="Per-probe read/write timeout in seconds")
    targets: Dict[str, TargetOverride] = Field(
        default_factory=targets_from_env,
        description="Per-application overrides keyed by lower-case application id",
    )

    @field_validator("name", mode="before")
    @classmethod
    def empty_name_is_none(cls, v):
        return v or None

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        case_sensitive=False,
        extra="ignore",
    )


class StorageConfig(BaseSettings):
    """Where snapshots are persisted."""

    mode: str = Field(
        default="local",
        validation_alias="STORAGE_MODE",
        description="Storage mode: local, s3 or both",
    )
    local_dir: str = Field(
        default="./snapshots",
        validation_alias="LOCAL_SNAPSHOT_DIR",
        description="Base directory for local snapshots",
    )
    local_format: str = Field(
        default="both",
        validation_alias="LOCAL_SAVE_FORMAT",
        description="Local file format: json, txt or both",
    )

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: str) -> str:
        v = v.lower()
        if v not in STORAGE_MODES:
            raise ValueError(f"mode must be one of {list(STORAGE_MODES)}")
        return v

    @field_validator("local_format")
    @classmethod
    def validate_local_format(cls, v: str) -> str:
        v = v.lower()
        if v not in LOCAL_SAVE_FORMATS:
            raise ValueError(f"local_format must be one of {list(LOCAL_SAVE_FORMATS)}")
        return v

    @property
    def uses_local(self) -> bool:
        return self.mode in ("local", "both")

    @property
    def uses_s3(self) -> bool:
        return self.mode in ("s3", "both")

    model_config = SettingsConfigDict(
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )


class S3Config(BaseSettings):
    """Object store destination. Credentials come from the ambient AWS chain."""

    bucket: str = Field(
        default="your-incident-bucket",
        validation_alias="S3_BUCKET",
        description="Bucket receiving snapshot objects",
    )
    region: str = Field(
        default="ap-northeast-2",
        validation_alias="AWS_REGION",
        description="AWS region of the bucket",
    )
    prefix: str = Field(
        default="db-snapshots",
        validation_alias="S3_PREFIX",
        description="Key prefix for snapshot objects",
    )

    @field_validator("prefix")
    @classmethod
    def strip_slashes(cls, v: str) -> str:
        return v.strip("/")

    model_config = SettingsConfigDict(
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )


class APIConfig(BaseSettings):
    """FastAPI server configuration."""

    host: str = Field(default="0.0.0.0", description="API server host")
    port: int = Field(default=8000, description="API server port")
    log_level: str = Field(default="INFO", description="Logging level")
    default_application: str = Field(
        default="dev",
        description="Application used by /test/collect when none is given",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v_upper

    model_config = SettingsConfigDict(
        env_prefix="API_",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Main application configuration."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    s3: S3Config = Field(default_factory=S3Config)
    api: APIConfig = Field(default_factory=APIConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Build the settings value on first use and return it afterwards."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Rebuild settings from the environment (useful for testing)."""
    global _settings
    _settings = Settings()
    return _settings
