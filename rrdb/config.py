from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreConfig(BaseModel):
    """Defaults for newly created stores."""

    resolution: int = Field(60, gt=0, description="Seconds per timebox")
    capacity: int = Field(1440, gt=0, description="Number of timeboxes kept")


class RuntimeConfig(BaseModel):
    store: StoreConfig = Field(default_factory=StoreConfig)
    validate_snapshots: bool = Field(
        True, description="Check ring invariants when decoding snapshots"
    )
    strict_writes: bool = Field(
        False, description="Raise on out-of-order samples instead of skipping them"
    )


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    LOG_LEVEL: str = "INFO"
    RRDB_SNAPSHOT_DIR: str = "./rrdb_cache"
    RRDB_CACHE_SIZE_LIMIT: int = 2 * 1024**3


DEFAULT_CONFIG_PATH = Path("config.yaml")


def _read_runtime(path: Path) -> RuntimeConfig:
    with path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    try:
        return RuntimeConfig.model_validate(raw)
    except ValidationError as ve:
        raise ValueError(f"Invalid config.yaml: {ve}") from ve


class AppConfig(BaseModel):
    env: EnvSettings
    runtime: RuntimeConfig

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "AppConfig":
        """Environment (and ``.env``) plus ``config_path`` or ``./config.yaml`` when present."""
        path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
        runtime = _read_runtime(path) if path.exists() else RuntimeConfig()
        return cls(env=EnvSettings(), runtime=runtime)


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    return AppConfig.load(config_path)
