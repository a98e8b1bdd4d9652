"""Configuration package for the DB snapshot collector."""

from .settings import (
    APIConfig,
    DatabaseConfig,
    S3Config,
    Settings,
    StorageConfig,
    TargetOverride,
    get_settings,
    reload_settings,
)

__all__ = [
    "APIConfig",
    "DatabaseConfig",
    "S3Config",
    "Settings",
    "StorageConfig",
    "TargetOverride",
    "get_settings",
    "reload_settings",
]
