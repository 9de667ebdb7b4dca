"""Centralized logging configuration for the Catalog Admin client."""

from __future__ import annotations

import logging
from logging import Logger
from pathlib import Path
from typing import Iterable, List


DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Transport libraries log every request at INFO; our own HTTP events cover that.
NOISY_LOGGERS = ("httpx", "httpcore")

_INSTALLED_HANDLER_FLAG = "_catalog_admin_handler"


def configure_logging(level: int = logging.INFO, *, handlers: Iterable[logging.Handler] | None = None) -> Logger:
    """Configure the root logger, replacing handlers from an earlier call."""

    logger = logging.getLogger()
    logger.setLevel(level)

    for existing in list(logger.handlers):
        if getattr(existing, _INSTALLED_HANDLER_FLAG, False):
            logger.removeHandler(existing)
            existing.close()

    if handlers is None:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
        handlers = [stream_handler]

    for handler in handlers:
        setattr(handler, _INSTALLED_HANDLER_FLAG, True)
        logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def build_cli_handlers(storage_root: Path, *, console_level: int = logging.WARNING) -> List[logging.Handler]:
    """File handler with full detail plus a terminal handler for problems only."""

    formatter = logging.Formatter(DEFAULT_LOG_FORMAT)
    file_handler = logging.FileHandler(get_log_file_path(storage_root), encoding="utf-8")
    file_handler.setFormatter(formatter)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(console_level)
    return [file_handler, stream_handler]


def get_log_file_path(storage_root: Path) -> Path:
    """Return the default path for the client log file."""

    return storage_root / "catalog_admin.log"


__all__ = [
    "DEFAULT_LOG_FORMAT",
    "NOISY_LOGGERS",
    "build_cli_handlers",
    "configure_logging",
    "get_log_file_path",
]
