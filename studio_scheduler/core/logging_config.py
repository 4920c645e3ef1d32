import logging
import sys
from typing import Optional, Union

from studio_scheduler.core.config import LOG_LEVEL, LOG_FILE

# Define log format
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers that only log at WARNING unless the engine runs at DEBUG
QUIET_LOGGERS = ["uvicorn", "fastapi", "kombu", "amqp", "redis"]


def _resolve_level(level: Union[int, str, None]) -> int:
    if level is None:
        level = LOG_LEVEL
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        return resolved
    return level


def setup_logging(log_level: Union[int, str, None] = None, log_file: Optional[str] = None):
    """
    Configure the root logger for the API, worker and CLI.

    Args:
        log_level: Level name or number (defaults to LOG_LEVEL)
        log_file: Optional file to log to as well as stdout (defaults to LOG_FILE)

    Returns:
        The configured root logger
    """
    level = _resolve_level(log_level)
    log_file = log_file if log_file is not None else LOG_FILE

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    quiet_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
    logging.getLogger("celery").setLevel(logging.INFO)
    logging.getLogger("studio_scheduler").setLevel(level)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Module name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
