"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (NEWSFEED__FEED__PAGE_SIZE=20)
  2. newsfeed.yaml          (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional; all fields have defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_CACHE_ROOT = platformdirs.user_cache_dir("newsfeed")
_DEFAULT_IMAGE_CACHE_DIR = str(Path(_DEFAULT_CACHE_ROOT) / "ImageCache")


def _find_config_file() -> str | None:
    """Return the path of the first newsfeed.yaml found, or None."""
    candidates = [
        Path("newsfeed.yaml"),
        Path(platformdirs.user_config_dir("newsfeed")) / "newsfeed.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class FeedSettings(BaseModel):
    base_url: str = "https://webapi.autodoc.ru/api"
    page_size: int = Field(default=15, ge=1)


class ImageCacheSettings(BaseModel):
    directory: str = _DEFAULT_IMAGE_CACHE_DIR
    count_limit: int = Field(default=100, ge=1)
    byte_limit: int = Field(default=100 * 1024 * 1024, ge=1)  # 100 MiB
    # None keeps fetched bytes verbatim on disk; a value re-encodes to JPEG.
    reencode_quality: int | None = Field(default=None, ge=1, le=95)


class HttpSettings(BaseModel):
    timeout_seconds: float = 30.0
    user_agent: str = "newsfeed/1.0"
    max_connections: int = 10


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: NEWSFEED__IMAGE_CACHE__COUNT_LIMIT=50
        env_prefix="NEWSFEED__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    feed: FeedSettings = FeedSettings()
    image_cache: ImageCacheSettings = ImageCacheSettings()
    http: HttpSettings = HttpSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
        )
