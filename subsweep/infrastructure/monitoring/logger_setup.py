"""Centralized logging configuration for the subsweep application.

Everything goes to stderr so that `scan --json` output on stdout stays
parseable. A rotating log file can be added through `logging.file`.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

DEFAULT_LOG_LEVEL = logging.WARNING
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FILE_MAX_BYTES = 1_000_000
LOG_FILE_BACKUPS = 3

# Their request lines include the full URL, and with it the API key
QUIET_LOGGERS = ("httpx", "httpcore")


def resolve_log_level(level_name: Optional[str], verbose: bool = False) -> int:
    """'info' -> logging.INFO. Unknown names fall back to WARNING; verbose forces DEBUG."""
    if verbose:
        return logging.DEBUG
    level = logging.getLevelName(str(level_name or "").upper())
    return level if isinstance(level, int) else DEFAULT_LOG_LEVEL


def _file_handler(log_file: Union[str, Path]) -> logging.Handler:
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(path, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding='utf-8')


def setup_logging(
    log_level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[Union[str, Path]] = None,
) -> None:
    """Replaces the root logger's handlers with a stderr handler and, optionally, a file handler.

    Args:
        log_level: The minimum logging level (e.g., logging.DEBUG, logging.INFO).
        log_format: The format string for log messages.
        log_file: Optional path to a rotating log file; '~' is expanded.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handlers = [logging.StreamHandler(sys.stderr)]
    file_error = None
    if log_file:
        try:
            handlers.append(_file_handler(log_file))
        except OSError as e:
            file_error = e

    formatter = logging.Formatter(log_format)
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    if file_error is not None:
        logging.error(f"Failed to set up file logging to {log_file}: {file_error}")
    logging.debug(f"Logging configured. Level={logging.getLevelName(log_level)}, file={log_file or 'none'}")
