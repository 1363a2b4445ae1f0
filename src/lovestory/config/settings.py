# src/lovestory/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/lovestory/config/defaults.yaml`, then optionally overridden by:
- an external YAML file via `LOVESTORY_CONFIG_PATH`
- a small whitelist of environment variables (see `_apply_env_overrides`)

Design rule:
- Operational knobs (timezone, storage, log level) live in YAML.
- Detection constants (100 m threshold, 60 s window, DBSCAN eps/minPoints) are part of
  the product definition and live next to the algorithms, not here.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from lovestory.core.env import load_dotenv_if_present
from lovestory.core.time import get_zone


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `lovestory.config`."""
    text = resources.files("lovestory.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "LoveStory"
    # Reference timezone for calendar-day boundaries (UTC+9).
    timezone: str = "Asia/Seoul"
    log_level: str = "INFO"

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        get_zone(value)
        return value


class StorageSettings(BaseModel):
    backend: Literal["memory", "jsonl"] = "memory"
    dir: str = ".data/lovestory"


class ProximitySettings(BaseModel):
    # When set, a member's latest sample older than this is treated as missing.
    max_sample_age_seconds: int | None = Field(default=None, ge=1)


class ApiSettings(BaseModel):
    recent_limit_default: int = Field(100, ge=1)
    recent_limit_max: int = Field(1000, ge=1)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    proximity: ProximitySettings = Field(default_factory=ProximitySettings)
    api: ApiSettings = Field(default_factory=ApiSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload."""
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("LOVESTORY_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    timezone = os.getenv("LOVESTORY_TIMEZONE")
    if timezone:
        data.setdefault("app", {})["timezone"] = timezone

    backend = os.getenv("LOVESTORY_STORAGE_BACKEND")
    if backend:
        data.setdefault("storage", {})["backend"] = backend

    storage_dir = os.getenv("LOVESTORY_STORAGE_DIR")
    if storage_dir:
        data.setdefault("storage", {})["dir"] = storage_dir

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("LOVESTORY_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
