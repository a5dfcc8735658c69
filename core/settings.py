"""Centralized application configuration."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional
import os
import sys


def get_default_data_dir(
    app_name: str,
    *,
    platform: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """Return an OS-specific user data directory for ``app_name``."""

    platform_id = (platform or sys.platform).lower()
    environ = dict(os.environ if env is None else env)
    home_dir = Path(home or Path.home())
    sanitized = app_name.strip() or "app"
    sanitized = sanitized.replace("/", "-").replace("\\", "-")

    if platform_id.startswith("win"):
        base = Path(environ.get("APPDATA") or home_dir / "AppData" / "Roaming")
    elif platform_id == "darwin":
        base = Path(environ.get("APPDATA") or home_dir / "Library" / "Application Support")
    else:
        base = Path(environ.get("XDG_DATA_HOME") or home_dir / ".local" / "share")

    return (base.expanduser() / sanitized)


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


def get_environment(env: Optional[Mapping[str, str]] = None) -> Environment:
    """Resolve the running environment from ``WMS_ENV`` (development by default)."""

    raw = (dict(os.environ if env is None else env).get("WMS_ENV") or "").strip().lower()
    try:
        return Environment(raw)
    except ValueError:
        return Environment.development


APP_NAME = "WhatsMyShare"
APP_VERSION = "1.0.0"

ENVIRONMENT = get_environment()

DATA_DIR = get_default_data_dir(APP_NAME)
LOG_DIR = DATA_DIR / "logs"

DB_PATH = DATA_DIR / "offline_operations.db"
CONFIG_PATH = DATA_DIR / "config.json"


@dataclass(frozen=True)
class QueueSettings:
    retry_limit: int = 3
    idle_reset_delay_sec: float = 2.0


QUEUE = QueueSettings()


@dataclass(frozen=True)
class ConnectivitySettings:
    health_url: Optional[str] = None
    timeout_sec: float = 2.0
    poll_interval_sec: float = 15.0


CONNECTIVITY = ConnectivitySettings()


@dataclass(frozen=True)
class LoggingSettings:
    directory: Path = LOG_DIR
    filename: str = "sync.log"
    max_bytes: int = 1_000_000
    backup_count: int = 3
    level: str = "DEBUG" if ENVIRONMENT is Environment.development else "INFO"

    @property
    def path(self) -> Path:
        return self.directory / self.filename


LOGGING = LoggingSettings()


__all__ = [
    "APP_NAME",
    "APP_VERSION",
    "CONFIG_PATH",
    "CONNECTIVITY",
    "DATA_DIR",
    "DB_PATH",
    "ENVIRONMENT",
    "Environment",
    "LOGGING",
    "LOG_DIR",
    "QUEUE",
    "ConnectivitySettings",
    "LoggingSettings",
    "QueueSettings",
    "get_default_data_dir",
    "get_environment",
]
