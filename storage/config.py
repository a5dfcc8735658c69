"""Simple JSON-backed configuration store."""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

from core.errors import ConfigError
from core.settings import (
    CONFIG_PATH,
    CONNECTIVITY,
    LOGGING,
    QUEUE,
    ConnectivitySettings,
    LoggingSettings,
    QueueSettings,
)


@dataclass
class AppConfig:
    """User overrides persisted to ``config.json``; ``None`` keeps the default."""

    retry_limit: Optional[int] = None
    idle_reset_delay_sec: Optional[float] = None
    health_url: Optional[str] = None
    poll_interval_sec: Optional[float] = None
    log_level: Optional[str] = None


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _load_raw(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def load_config(path: Optional[Path] = None) -> AppConfig:
    target = path or CONFIG_PATH
    data = _load_raw(target)
    return AppConfig(
        retry_limit=data.get("retry_limit"),
        idle_reset_delay_sec=data.get("idle_reset_delay_sec"),
        health_url=data.get("health_url"),
        poll_interval_sec=data.get("poll_interval_sec"),
        log_level=data.get("log_level"),
    )


def save_config(config: AppConfig, path: Optional[Path] = None) -> None:
    target = path or CONFIG_PATH
    _ensure_parent(target)
    payload = json.dumps(asdict(config), ensure_ascii=False, indent=2, sort_keys=True)
    tmp = target.with_suffix(".tmp")
    try:
        tmp.write_text(payload, encoding="utf-8")
        tmp.replace(target)
    finally:
        if tmp.exists():
            try:
                tmp.unlink()
            except OSError:
                pass


def update_config(path: Optional[Path] = None, **changes: Any) -> AppConfig:
    target = path or CONFIG_PATH
    cfg = load_config(target)
    for key, value in changes.items():
        if hasattr(cfg, key):
            setattr(cfg, key, value)
    # a value that would fail at startup never reaches the file
    queue_settings(cfg)
    connectivity_settings(cfg)
    logging_settings(cfg)
    save_config(cfg, target)
    return cfg


def _as_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc


def queue_settings(config: Optional[AppConfig] = None) -> QueueSettings:
    cfg = config or AppConfig()
    settings = QUEUE
    if cfg.retry_limit is not None:
        try:
            limit = int(cfg.retry_limit)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"retry_limit must be an integer, got {cfg.retry_limit!r}") from exc
        if limit < 1:
            raise ConfigError(f"retry_limit must be at least 1, got {limit}")
        settings = replace(settings, retry_limit=limit)
    if cfg.idle_reset_delay_sec is not None:
        delay = _as_float("idle_reset_delay_sec", cfg.idle_reset_delay_sec)
        if delay < 0:
            raise ConfigError(f"idle_reset_delay_sec must not be negative, got {delay}")
        settings = replace(settings, idle_reset_delay_sec=delay)
    return settings


def connectivity_settings(config: Optional[AppConfig] = None) -> ConnectivitySettings:
    cfg = config or AppConfig()
    settings = CONNECTIVITY
    if cfg.health_url:
        if not isinstance(cfg.health_url, str):
            raise ConfigError(f"health_url must be a string, got {cfg.health_url!r}")
        settings = replace(settings, health_url=cfg.health_url.rstrip("/"))
    if cfg.poll_interval_sec is not None:
        interval = _as_float("poll_interval_sec", cfg.poll_interval_sec)
        if interval <= 0:
            raise ConfigError(f"poll_interval_sec must be positive, got {interval}")
        settings = replace(settings, poll_interval_sec=interval)
    return settings


def logging_settings(config: Optional[AppConfig] = None) -> LoggingSettings:
    cfg = config or AppConfig()
    if not cfg.log_level:
        return LOGGING
    level = str(cfg.log_level).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigError(f"log_level must be a logging level name, got {cfg.log_level!r}")
    return replace(LOGGING, level=level)


__all__ = [
    "AppConfig",
    "connectivity_settings",
    "load_config",
    "logging_settings",
    "queue_settings",
    "save_config",
    "update_config",
]
