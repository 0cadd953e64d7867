"""Logging setup: console plus rotating files under ``logs/``."""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from alumni_api.core import config

CONSOLE_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "hpack", "postgrest", "storage3")


def _file_handler(path: Path, level: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(log_level: Optional[str] = None, log_dir: Optional[str] = "logs") -> None:
    """
    Configure the root logger once per process.

    Args:
        log_level: Level name override. Defaults to DEBUG when settings.DEBUG, else INFO.
        log_dir: Directory for ``app.log`` and ``errors.log``. None logs to the console only.
    """
    if log_level:
        level = getattr(logging, log_level.upper(), logging.INFO)
    else:
        level = logging.DEBUG if (config.settings and config.settings.DEBUG) else logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(console)

    if log_dir:
        try:
            directory = Path(log_dir)
            directory.mkdir(parents=True, exist_ok=True)
            root.addHandler(_file_handler(directory / "app.log", logging.DEBUG))
            root.addHandler(_file_handler(directory / "errors.log", logging.ERROR))
        except OSError:
            # Read-only filesystems in containers
            root.warning("File logging not available, using console logging only")

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.info(f"Logging initialized at {logging.getLevelName(level)} level")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
