from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .config import LoggingSettings
from .core.config import DATA_DIR, ensure_data_dir

DEFAULT_LOG_FILE = "band_sync.log"

# Per-request chatter from the HTTP stack drowns out sync and queue messages.
CHATTY_LOGGERS = ("httpx", "httpcore", "hypercorn.access")

_INITIALIZED = False


def resolve_log_file(settings: LoggingSettings) -> Path:
    if settings.file is not None:
        return settings.file
    ensure_data_dir()
    return DATA_DIR / DEFAULT_LOG_FILE


def configure_logging(settings: Optional[LoggingSettings] = None) -> Optional[Path]:
    """Attach the rotating log file and console handlers to the root logger.

    Only the first call has an effect; it returns the log file in use, later
    calls return ``None``.
    """

    global _INITIALIZED
    if _INITIALIZED:
        return None
    settings = settings or LoggingSettings()

    log_file = resolve_log_file(settings)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    file_handler = RotatingFileHandler(
        str(log_file), maxBytes=settings.max_bytes, backupCount=settings.backup_count
    )
    file_handler.setFormatter(formatter)
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    level = getattr(logging, settings.level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(file_handler)
    root.addHandler(console_handler)
    if level > logging.DEBUG:
        for name in CHATTY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    _INITIALIZED = True
    logging.getLogger(__name__).debug("Band Sync logging to %s at %s", log_file, settings.level)
    return log_file


__all__ = ["CHATTY_LOGGERS", "configure_logging", "resolve_log_file"]
