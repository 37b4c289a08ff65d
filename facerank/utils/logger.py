"""Structured logging configuration for facerank.

This module provides colored console logging and optional rotating file
logging with execution-time tracking utilities.
"""

import logging
import os
import time
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import colorlog


# Default log format
CONSOLE_FORMAT_COLOR = "%(log_color)s%(levelname)-8s%(reset)s %(blue)s%(name)s%(reset)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_DIR_ENV = "FACERANK_LOG_DIR"


def _setup_console_handler(level: int) -> logging.Handler:
    """Create and configure colored console handler.

    Args:
        level: Logging level

    Returns:
        Configured console handler
    """
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)

    formatter = colorlog.ColoredFormatter(
        CONSOLE_FORMAT_COLOR,
        datefmt=DATE_FORMAT,
        log_colors={
            'DEBUG': 'cyan',
            'INFO': 'green',
            'WARNING': 'yellow',
            'ERROR': 'red',
            'CRITICAL': 'red,bg_white',
        }
    )

    console_handler.setFormatter(formatter)
    return console_handler


def _setup_file_handler(level: int, log_dir: Path) -> logging.Handler:
    """Create and configure rotating file handler.

    Args:
        level: Logging level
        log_dir: Directory for log files

    Returns:
        Configured rotating file handler
    """
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / "facerank.log"

    # Rotating file handler: max 10MB, keep 5 backup files
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(level)

    formatter = logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT)
    file_handler.setFormatter(formatter)

    return file_handler


def get_logger(name: str, log_dir: Optional[Path] = None, level: Optional[str] = None) -> logging.Logger:
    """Get or create a logger with console and optional file handlers.

    Args:
        name: Logger name (typically __name__ from calling module)
        log_dir: Directory for log files. If None, uses the FACERANK_LOG_DIR
              environment variable; without either, only console logging is set up.
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
              If None, uses LOG_LEVEL environment variable, defaulting to INFO.
              Pass config.log_level from AppConfig for config-driven logging.

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only configure if logger has no handlers (avoid duplicate handlers)
    if not logger.handlers:
        # Determine log level: explicit parameter > env var > default
        if level is not None:
            log_level_str = level.upper()
        else:
            log_level_str = os.environ.get('LOG_LEVEL', 'INFO').upper()
        log_level = getattr(logging, log_level_str, logging.INFO)

        logger.setLevel(log_level)

        logger.addHandler(_setup_console_handler(log_level))

        if log_dir is None and os.environ.get(LOG_DIR_ENV):
            log_dir = Path(os.environ[LOG_DIR_ENV])
        if log_dir is not None:
            logger.addHandler(_setup_file_handler(log_level, log_dir))

        # Prevent propagation to root logger
        logger.propagate = False

    return logger


def log_performance(logger: logging.Logger, operation: str, duration: float) -> None:
    """Log performance metrics for an operation.

    Args:
        logger: Logger instance
        operation: Name of the operation
        duration: Duration in seconds
    """
    logger.info(f"Performance: {operation} completed in {duration:.3f}s")


@contextmanager
def log_execution_time(logger: logging.Logger, operation: str):
    """Context manager to automatically log operation execution time.

    Args:
        logger: Logger instance
        operation: Name of the operation

    Usage:
        with log_execution_time(logger, "population recomputation"):
            engine.recompute(records)
    """
    logger.debug(f"Starting: {operation}")
    start_time = time.time()

    try:
        yield
    finally:
        duration = time.time() - start_time
        logger.debug(f"Completed: {operation} in {duration:.3f}s")


def set_log_level(logger: logging.Logger, level: str) -> None:
    """Change the log level of a logger and all its handlers.

    Args:
        logger: Logger instance
        level: New log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level_upper = level.upper()
    log_level = getattr(logging, level_upper, logging.INFO)

    logger.setLevel(log_level)
    for handler in logger.handlers:
        handler.setLevel(log_level)

    logger.debug(f"Log level changed to {level_upper}")


def log_exception(logger: logging.Logger, operation: str, exception: Exception) -> None:
    """Log an exception with context.

    Args:
        logger: Logger instance
        operation: Name of the operation that failed
        exception: The exception that was raised
    """
    logger.error(f"Failed: {operation}: {exception}", exc_info=True)


def set_package_log_level(level: str, package: str = "facerank") -> None:
    """Apply a log level to every logger already created under ``package``.

    Args:
        level: New log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        package: Dotted logger-name prefix
    """
    for name in list(logging.root.manager.loggerDict):
        if name == package or name.startswith(f"{package}."):
            set_log_level(logging.getLogger(name), level)
