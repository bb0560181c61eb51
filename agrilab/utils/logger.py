"""
Logging Configuration Module.

All pipeline loggers live under the "agrilab" namespace. setup_logger()
attaches a colorama-coloured console handler and, optionally, a rotating
log file to that namespace; modules only ever call get_logger(__name__).

Usage:
    from agrilab.utils.logger import setup_logger_from_config, get_logger

    setup_logger_from_config()          # once, at startup
    logger = get_logger(__name__)
    logger.info("Extracting soil report...")
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Union

import colorama
from colorama import Fore, Style

colorama.init()

ROOT_LOGGER_NAME = "agrilab"

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# HTTP client libraries log every request at INFO
NOISY_LOGGERS = ("openai", "httpx", "httpcore", "PIL")


class ColoredFormatter(logging.Formatter):
    """Console formatter that colours the level name only."""

    LEVEL_COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno)
        if color is None:
            return super().format(record)

        original = record.levelname
        record.levelname = f"{color}{original}{Style.RESET_ALL}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def parse_level(level: Union[str, int]) -> int:
    """
    Convert a level name ("debug", "INFO") or number to a logging level.

    Raises:
        ValueError: If the name is not a logging level.
    """
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def _console_handler(log_format: str, date_format: str, colorize: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    formatter_class = ColoredFormatter if colorize else logging.Formatter
    handler.setFormatter(formatter_class(log_format, datefmt=date_format))
    return handler


def _file_handler(
    log_file: Union[str, Path],
    log_format: str,
    date_format: str,
    max_bytes: int,
    backup_count: int
) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )
    handler.setFormatter(logging.Formatter(log_format, datefmt=date_format))
    return handler


def setup_logger(
    level: Union[str, int] = "INFO",
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    log_file: Optional[Union[str, Path]] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    colorize: bool = True
) -> logging.Logger:
    """
    Configure the "agrilab" logger namespace.

    Safe to call again: previous handlers are closed and replaced.

    Args:
        level: Level name or number for the namespace and its handlers.
        log_format: Record format (DEFAULT_FORMAT when None).
        date_format: Timestamp format (DEFAULT_DATE_FORMAT when None).
        log_file: Rotating log file, or None for console only.
        max_bytes: Size at which the log file is rotated.
        backup_count: Rotated files to keep.
        colorize: Colour the console level names.

    Returns:
        The "agrilab" logger.
    """
    log_format = log_format or DEFAULT_FORMAT
    date_format = date_format or DEFAULT_DATE_FORMAT

    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()

    app_logger.addHandler(_console_handler(log_format, date_format, colorize))
    if log_file:
        app_logger.addHandler(_file_handler(log_file, log_format, date_format, max_bytes, backup_count))

    set_level(level)
    app_logger.propagate = False

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    app_logger.debug("Logging initialized")
    return app_logger


def set_level(level: Union[str, int]) -> None:
    """Change the level of the namespace and every handler attached to it."""
    numeric = parse_level(level)
    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    app_logger.setLevel(numeric)
    for handler in app_logger.handlers:
        handler.setLevel(numeric)


def get_logger(name: str) -> logging.Logger:
    """
    Return the logger for a module, placed under the "agrilab" namespace.

    Example:
        >>> get_logger("main").name
        'agrilab.main'
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logger_from_config() -> logging.Logger:
    """Configure logging from the `logging` section of the settings."""
    from config import ConfigurationManager

    config = ConfigurationManager()
    settings = config.section("logging")
    console = settings.get("console") or {}
    file_settings = settings.get("file") or {}

    log_file = None
    if file_settings.get("enabled") and file_settings.get("path"):
        log_file = config.resolve_path(file_settings["path"])

    return setup_logger(
        level=settings.get("level", "INFO"),
        log_format=settings.get("format"),
        date_format=settings.get("date_format"),
        log_file=log_file,
        max_bytes=file_settings.get("max_bytes", 10 * 1024 * 1024),
        backup_count=file_settings.get("backup_count", 5),
        colorize=console.get("colorize", True)
    )
