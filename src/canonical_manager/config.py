"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Constructor arguments
  2. Environment variables     (CANONICAL_MANAGER__REGISTRY__URL=https://...)
  3. canonical-manager.yaml    (searched in cwd, then ~/.config/canonical-manager/)
  4. Hardcoded defaults

The config file is optional; all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_APP_NAME = "canonical-manager"
_DEFAULT_WORKING_DIR = platformdirs.user_cache_dir(_APP_NAME)


def _find_config_file() -> str | None:
    """Return the path of the first canonical-manager.yaml found, or None."""
    candidates = [
        Path(f"{_APP_NAME}.yaml"),
        Path.home() / ".config" / _APP_NAME / f"{_APP_NAME}.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class RegistrySettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str = "https://fs.get-ig.org/pkgs"


class FetcherSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    request_timeout_seconds: float = 30.0
    connect_timeout_seconds: float = 5.0


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: CANONICAL_MANAGER__LOGGING__LEVEL=DEBUG
        env_prefix="CANONICAL_MANAGER__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    # Package specs to ensure present, "name" or "name@version", in precedence order
    packages: list[str] = []
    working_dir: str = _DEFAULT_WORKING_DIR
    registry: RegistrySettings = RegistrySettings()
    fetcher: FetcherSettings = FetcherSettings()
    logging: LoggingSettings = LoggingSettings()

    @property
    def packages_dir(self) -> Path:
        """Directory holding one extracted package per sub-directory."""
        return Path(self.working_dir).expanduser() / "node_modules"

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
            # dotenv and file secrets intentionally excluded
        )
