"""
Structured Logging
==================

Logging configuration using structlog on top of stdlib logging.

Library code only emits events through ``LogManager.get_logger``; handlers
and files are attached when an application calls ``LogManager.setup``.
"""

import logging
from logging.handlers import RotatingFileHandler
import os
from pathlib import Path
import threading

import structlog

ROOT_LOGGER_NAME = "arangolink"


def _get_log_directory(log_dir: str | Path | None = None) -> Path | None:
    """
    Get a writable log directory, or None when file logging is not wanted.

    Priority:
    1. Explicit log_dir argument
    2. LOG_DIR environment variable

    Returns:
        Path to writable log directory, or None
    """
    candidate = log_dir if log_dir is not None else os.environ.get("LOG_DIR")
    if not candidate:
        return None

    path = Path(candidate)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError:
        return None
    if not os.access(path, os.W_OK):
        return None
    return path


def _validate_log_level(log_level: str) -> int:
    """
    Validate and convert log level string to numeric value.

    Args:
        log_level: Log level name (case-insensitive)

    Returns:
        Numeric logging level

    Raises:
        ValueError: If log_level is not a valid logging level name
    """
    level_name = str(log_level).upper()

    valid_levels = {"DEBUG", "INFO", "WARNING", "WARN", "ERROR", "CRITICAL", "FATAL"}
    if level_name not in valid_levels:
        raise ValueError(
            f"Invalid log level: '{log_level}'. "
            f"Must be one of: {', '.join(sorted(valid_levels))}"
        )

    return getattr(logging, level_name)


_PROCESSORS = [
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
    structlog.processors.JSONRenderer(),
]

# Global flags and lock for thread-safe initialization
_structlog_configured = False
_logging_initialized = False
_init_lock = threading.Lock()


def _configure_structlog() -> None:
    global _structlog_configured

    if _structlog_configured:
        return
    with _init_lock:
        if _structlog_configured:
            return
        structlog.configure(
            processors=_PROCESSORS,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        _structlog_configured = True


class LogManager:
    """
    Logging configuration for arangolink.

    Features:
    - Structured JSON events routed through the ``arangolink`` stdlib logger
    - Optional rotating log files
    - Context preservation (component, host, connection)
    """

    @staticmethod
    def setup(log_level: str = "INFO", log_dir: str | Path | None = None):
        """
        Attach handlers to the ``arangolink`` logger.

        Args:
            log_level: Minimum level emitted
            log_dir: Directory for rotating log files (defaults to LOG_DIR)
        """
        global _logging_initialized

        if _logging_initialized:
            return

        numeric_level = _validate_log_level(log_level)
        _configure_structlog()

        with _init_lock:
            if _logging_initialized:
                return

            handlers: list[logging.Handler] = [logging.StreamHandler()]

            directory = _get_log_directory(log_dir)
            if directory is not None:
                # Main log file with rotation (10MB, keep 5 backups)
                handlers.append(RotatingFileHandler(
                    directory / "arangolink.log",
                    maxBytes=10_485_760,
                    backupCount=5
                ))
                # Error log file (10MB, keep 3 backups)
                error_handler = RotatingFileHandler(
                    directory / "errors.log",
                    maxBytes=10_485_760,
                    backupCount=3
                )
                error_handler.setLevel(logging.ERROR)
                handlers.append(error_handler)

            root_logger = logging.getLogger(ROOT_LOGGER_NAME)
            root_logger.setLevel(numeric_level)
            for handler in handlers:
                handler.setFormatter(logging.Formatter("%(message)s"))
                root_logger.addHandler(handler)

            _logging_initialized = True

        structlog.get_logger(ROOT_LOGGER_NAME).info(
            "logging_initialized",
            log_dir=str(directory) if directory else None,
            level=log_level,
        )

    @staticmethod
    def get_logger(component: str, **context):
        """
        Get a logger instance bound to a component.

        Args:
            component: Dotted name below ``arangolink`` (e.g. "connection")
            **context: Key/value pairs attached to every event

        Returns:
            Bound structlog logger
        """
        _configure_structlog()
        return structlog.get_logger(f"{ROOT_LOGGER_NAME}.{component}").bind(component=component, **context)
