"""
Settings Management

Pydantic-based settings schema with environment variable support.
Layers the TOML config file and FERNFS_* environment variables over defaults.

@.architecture
Incoming: utils/config.py, Environment variables, config/fernfs.toml, app.py, main.py --- {Dict from load_toml_config, str from os.getenv, get_settings calls}
Processing: get_settings(), reload_settings(), _merge_sections(), _apply_env_overrides(), field_validator() --- {4 jobs: configuration_loading, environment_variable_merging, schema_validation, caching}
Outgoing: app.py, main.py, api/dependencies.py, api/v1/endpoints/files.py --- {Settings Pydantic model with typed config sections}
"""

import os
from functools import lru_cache
from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator

from data.storage.factory import StorageConfig
from data.storage.local import DEFAULT_CHUNK_SIZE
from utils.config import load_config as load_toml_config

ENV_PREFIX = "FERNFS_"


# =============================================================================
# Settings Schemas
# =============================================================================

class ServerSettings(BaseModel):
    """HTTP server settings (timeouts in seconds)."""
    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)
    read_timeout: float = Field(default=15.0, gt=0)
    write_timeout: float = Field(default=15.0, gt=0)
    shutdown_timeout: float = Field(default=5.0, ge=0)


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    format: str = "json"  # json|text

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        allowed = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of {allowed}")
        return v.upper()

    @field_validator('format')
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in ('json', 'text'):
            raise ValueError("Log format must be 'json' or 'text'")
        return v


class StorageSettings(BaseModel):
    """File storage backend settings."""
    type: str = "local"
    base_path: str = "./data/files"
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, gt=0)
    # Upload bodies above this size spill from memory to a temp file
    spool_max_bytes: int = Field(default=8 * 1024 * 1024, ge=0)

    @field_validator('base_path')
    @classmethod
    def validate_base_path(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("storage base_path is required")
        return v

    def to_storage_config(self) -> StorageConfig:
        return StorageConfig(
            type=self.type,
            base_path=self.base_path,
            chunk_size=self.chunk_size,
        )


class Settings(BaseModel):
    """
    Main application settings.

    Loads configuration from:
    1. TOML config file (config/fernfs.toml)
    2. Environment variables (FERNFS_<SECTION>_<KEY>)
    3. Defaults defined in schemas

    Priority: Environment variables > TOML config > Defaults
    """

    app_name: str = "FernFS Backend"
    app_version: str = "0.1.0"
    environment: str = "development"  # development|production|test

    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = ['development', 'production', 'test']
        if v not in allowed:
            raise ValueError(f"Environment must be one of {allowed}")
        return v


# =============================================================================
# Settings Loader
# =============================================================================

_SECTIONS = {
    "server": ServerSettings,
    "logging": LoggingSettings,
    "storage": StorageSettings,
}


def _merge_sections(toml_config: Dict[str, Any]) -> Dict[str, Any]:
    """Pick the known sections out of the raw TOML dict."""
    settings_dict: Dict[str, Any] = {}
    for section in _SECTIONS:
        values = toml_config.get(section)
        if isinstance(values, dict):
            settings_dict[section] = dict(values)
    for key in ("app_name", "environment"):
        if key in toml_config:
            settings_dict[key] = toml_config[key]
    return settings_dict


def _apply_env_overrides(settings_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay FERNFS_<SECTION>_<KEY> environment variables."""
    for section, schema in _SECTIONS.items():
        for field_name in schema.model_fields:
            env_name = f"{ENV_PREFIX}{section.upper()}_{field_name.upper()}"
            if (value := os.getenv(env_name)) is not None:
                settings_dict.setdefault(section, {})[field_name] = value

    if environment := os.getenv(f"{ENV_PREFIX}ENVIRONMENT"):
        settings_dict["environment"] = environment
    return settings_dict


@lru_cache()
def get_settings() -> Settings:
    """
    Load and return application settings (cached).

    Returns:
        Settings: Complete application settings
    """
    settings_dict = _merge_sections(load_toml_config())
    settings_dict = _apply_env_overrides(settings_dict)
    return Settings(**settings_dict)


def reload_settings() -> Settings:
    """
    Reload settings (clears cache).

    Returns:
        Settings: Reloaded application settings
    """
    get_settings.cache_clear()
    return get_settings()


# =============================================================================
# Environment-specific Helpers
# =============================================================================

def is_development() -> bool:
    """Check if running in development environment."""
    return get_settings().environment == "development"


def is_production() -> bool:
    """Check if running in production environment."""
    return get_settings().environment == "production"


def is_test() -> bool:
    """Check if running in test environment."""
    return get_settings().environment == "test"
