"""Translation host configuration management.

Configuration sources (in priority order):
1. Environment variables (TRANSLATION_HOST_ prefix)
2. Config file (config.yaml)
3. Defaults
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "127.0.0.1"
    port: int = 1969


class SurfacePoolConfig(BaseModel):
    """Hidden surface pool configuration."""

    # Number of surfaces kept alive between leases
    capacity: int = Field(default=16, gt=0)
    window_kind: str = "navigator:browser"
    blank_uri: str = "about:blank"


class HeadlessConfig(BaseModel):
    """Headless surface host configuration."""

    user_agent: str = "translation-host/0.1"
    fetch_timeout_seconds: float = 30.0
    follow_redirects: bool = False
    # Host-wide cap on live surfaces; None means unlimited
    max_surfaces: int | None = Field(default=None, gt=0)


class LoggingConfig(BaseModel):
    """Diagnostics configuration.

    Levels follow the debug convention: 1 is most important, 5 is most verbose.
    """

    enabled: bool = True
    level: int = Field(default=5, ge=1, le=5)
    json_output: bool = False


class PrefsConfig(BaseModel):
    """Preference store configuration."""

    branch: str = "translation-server."
    defaults: dict[str, bool | int | str] = Field(default_factory=dict)


class ConsoleConfig(BaseModel):
    """Console message observer configuration."""

    skip_categories: list[str] = Field(
        default_factory=lambda: ["CSS Parser", "content javascript"]
    )


class Settings(BaseSettings):
    """Translation host settings."""

    model_config = SettingsConfigDict(
        env_prefix="TRANSLATION_HOST_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    surface_pool: SurfacePoolConfig = Field(default_factory=SurfacePoolConfig)
    headless: HeadlessConfig = Field(default_factory=HeadlessConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    prefs: PrefsConfig = Field(default_factory=PrefsConfig)
    console: ConsoleConfig = Field(default_factory=ConsoleConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Environment wins over values passed in from the YAML file
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def _load_config_file() -> dict:
    """Load configuration from YAML file if exists.

    Looks for config file in order:
    1. TRANSLATION_HOST_CONFIG_FILE environment variable
    2. ./config.yaml
    3. /etc/translation-host/config.yaml
    """
    config_paths = [
        os.environ.get("TRANSLATION_HOST_CONFIG_FILE"),
        Path("config.yaml"),
        Path("/etc/translation-host/config.yaml"),
    ]

    for path in config_paths:
        if path is None:
            continue
        path = Path(path)
        if path.exists():
            with open(path) as f:
                return yaml.safe_load(f) or {}

    return {}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    File values are passed as init kwargs; environment variables are applied
    on top of them by pydantic-settings.
    """
    file_config = _load_config_file()
    return Settings(**file_config)
