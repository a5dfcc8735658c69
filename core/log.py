"""Logger factory for the sync layer.

All loggers hang under the ``wms`` root so a single rotating file handler
collects the queue, network and storage messages.
"""
from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from core.settings import LOGGING, LoggingSettings


ROOT_LOGGER = "wms"
SYNC = "sync"
NETWORK = "network"
STORAGE = "storage"

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(settings: Optional[LoggingSettings] = None) -> logging.Logger:
    """Attach the rotating file handler to the ``wms`` logger once."""

    cfg = settings or LOGGING
    root = logging.getLogger(ROOT_LOGGER)
    if not any(isinstance(h, RotatingFileHandler) for h in root.handlers):
        try:
            cfg.directory.mkdir(parents=True, exist_ok=True)
            handler = RotatingFileHandler(
                cfg.path, maxBytes=cfg.max_bytes, backupCount=cfg.backup_count, encoding="utf-8"
            )
        except OSError as exc:
            root.warning("File logging disabled: %s", exc)
        else:
            handler.setFormatter(logging.Formatter(_FORMAT))
            root.addHandler(handler)
    root.setLevel(cfg.level.upper())
    return root


def get_logger(tag: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER}.{tag}")


__all__ = ["configure_logging", "get_logger", "NETWORK", "STORAGE", "SYNC"]
