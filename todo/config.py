"""Runtime settings, read from the environment (prefix ``TODO_``)."""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Optional
import os
import sys

APP_NAME = "todo"


def default_data_dir() -> Path:
    """Platform data directory: XDG on Linux, Application Support on macOS, APPDATA on Windows."""
    if sys.platform.startswith("win"):
        base = os.getenv("APPDATA") or os.getenv("USERPROFILE") or str(Path.home())
        return Path(base) / APP_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME
    base = os.getenv("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(base) / APP_NAME


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TODO_", extra="ignore")

    # Data file (and its `.lock` / `.tmp` siblings)
    data_file: Path = Field(default_factory=lambda: default_data_dir() / "tasks.json")

    # Cross-process lock polling
    lock_poll_interval: float = Field(0.05, gt=0)
    lock_timeout: Optional[float] = Field(None, gt=0)

    log_level: str = "INFO"

    # HTTP API
    http_host: str = "localhost"
    http_port: int = Field(8080, ge=1, le=65535)

    # Alerts (seconds)
    alert_interval: float = Field(60.0, gt=0)
    alert_lookahead: float = Field(24 * 60 * 60.0, gt=0)

    @property
    def alert_interval_td(self) -> timedelta:
        return timedelta(seconds=self.alert_interval)

    @property
    def alert_lookahead_td(self) -> timedelta:
        return timedelta(seconds=self.alert_lookahead)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
