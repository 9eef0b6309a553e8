"""
Centralized logger configuration for bucketbridge.

Provides a unified logging interface that can be customized by the user.
By default, uses Python's standard logging with the 'bucketbridge' namespace.

Usage:
    # Use default logger
    from bucketbridge.core.logger import get_logger
    logger = get_logger(__name__)
    logger.info("Message")

    # Set custom logger (e.g., structlog)
    from bucketbridge.core.logger import set_logger
    import structlog
    set_logger(structlog.get_logger())
"""

import logging
from typing import Any

# Global logger instance - defaults to standard logging
_custom_logger: Any = None

# Handler installed by configure_default_logging, replaced on reconfiguration
_console_handler: logging.Handler | None = None


class NullLogger:  # pragma: no cover
    """A logger that does nothing (for when logging is disabled)."""

    def debug(self, *args, **kwargs): pass
    def info(self, *args, **kwargs): pass
    def warning(self, *args, **kwargs): pass
    def error(self, *args, **kwargs): pass
    def exception(self, *args, **kwargs): pass
    def critical(self, *args, **kwargs): pass


def set_logger(logger: Any) -> None:
    """
    Set a custom logger for all bucketbridge components.

    Args:
        logger: A logger instance (e.g., structlog logger)
                Must support debug/info/warning/error/exception methods.
    """
    global _custom_logger
    _custom_logger = logger


def get_logger(name: str = "bucketbridge") -> Any:
    """
    Get a logger instance.

    If a custom logger was set via set_logger(), returns that.
    Otherwise, returns a standard Python logger with the given name.
    """
    if _custom_logger is not None:
        return _custom_logger

    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger


def configure_default_logging(  # pragma: no cover
    level: int | str = logging.INFO,
    format_string: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    json_output: bool = False,
) -> None:
    """
    Configure console logging for bucketbridge.

    Args:
        level: Logging level (default: INFO)
        format_string: Log message format, ignored when json_output is set
        json_output: Emit one JSON object per line with run context attached
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    handler = logging.StreamHandler()
    if json_output:
        from bucketbridge.monitoring.logging import MigrationContextFilter, MigrationJsonFormatter

        handler.setFormatter(MigrationJsonFormatter())
        handler.addFilter(MigrationContextFilter())
    else:
        handler.setFormatter(logging.Formatter(format_string))

    global _console_handler
    root = logging.getLogger("bucketbridge")
    root.setLevel(level)
    if _console_handler is not None:
        root.removeHandler(_console_handler)
    root.addHandler(handler)
    _console_handler = handler
