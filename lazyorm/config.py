"""Settings loaded from TOML with environment overrides."""
from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_SETTINGS_PATH = Path("config/settings.toml")
DATABASE_PATH_ENV = "LAZYORM_DATABASE_PATH"


class StoreSettings(BaseModel):
    """Where the SQLite database lives."""

    path: str = "data/lazyorm.db"


class FetchSettings(BaseModel):
    """HTTP client options for resolving deferred remote fields."""

    user_agent: str = Field(default="lazyorm", min_length=1)
    timeout_seconds: Optional[float] = Field(default=None, gt=0)
    follow_redirects: bool = True


class LoggingSettings(BaseModel):
    config_path: Path = Path("config/logging.yaml")
    level: str = "INFO"


class Settings(BaseModel):
    store: StoreSettings = Field(default_factory=StoreSettings)
    fetch: FetchSettings = Field(default_factory=FetchSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_settings(path: Optional[Path] = None) -> Settings:
    """Read the TOML configuration file, then apply ``.env``/environment overrides.

    A missing file yields defaults.
    """
    load_dotenv()
    path = path or DEFAULT_SETTINGS_PATH
    payload = {}
    if path.exists():
        with path.open("rb") as handle:
            payload = tomllib.load(handle)
    settings = Settings.model_validate(payload)
    override = os.environ.get(DATABASE_PATH_ENV)
    if override:
        settings.store.path = override
    return settings
