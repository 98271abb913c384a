"""Centralized logging configuration for the extraction pipeline."""

import os
import sys
import logging
from typing import Optional


class _BelowLevelFilter(logging.Filter):
    """Pass only records strictly below a given level."""

    def __init__(self, level: int):
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.level


def configure_line_buffering() -> None:
    """
    Switch stdout and stderr to line buffering so progress and error
    lines interleave in the order they were written.
    """
    for stream in (sys.stdout, sys.stderr):
        reconfigure = getattr(stream, "reconfigure", None)
        if reconfigure is not None:
            reconfigure(line_buffering=True)


def _make_formatter(format_type: str) -> logging.Formatter:
    if format_type == "structured":
        # Structured logging format with more context
        return logging.Formatter(
            "%(asctime)s | %(name)s | %(levelname)-8s | "
            "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    return logging.Formatter("%(message)s")


def setup_logger(
    name: str = "x3f-extract",
    level: Optional[str] = None,
    format_type: str = "simple",
) -> logging.Logger:
    """
    Setup centralized logging with environment variable configuration.

    Records below WARNING are written to stdout, WARNING and above to
    stderr.

    Args:
        name: Logger name (defaults to "x3f-extract")
        level: Log level override (defaults to env var or INFO)
        format_type: Logging format ("structured" or "simple")

    Returns:
        Configured logger instance

    Environment Variables:
        LOG_LEVEL: Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_FORMAT: Set format type ("structured" or "simple")
    """
    logger = logging.getLogger(name)

    # Determine log level from parameter, env var, or default
    if level:
        log_level = getattr(logging, level.upper(), logging.INFO)
    else:
        env_level = os.getenv("LOG_LEVEL", "INFO").upper()
        log_level = getattr(logging, env_level, logging.INFO)

    logger.setLevel(log_level)

    # Avoid duplicate handlers
    if not logger.handlers:
        env_format = os.getenv("LOG_FORMAT", format_type).lower()
        formatter = _make_formatter(env_format)

        out_handler = logging.StreamHandler(sys.stdout)
        out_handler.addFilter(_BelowLevelFilter(logging.WARNING))
        out_handler.setFormatter(formatter)

        err_handler = logging.StreamHandler(sys.stderr)
        err_handler.setLevel(logging.WARNING)
        err_handler.setFormatter(formatter)

        logger.addHandler(out_handler)
        logger.addHandler(err_handler)

    # Prevent duplicate log messages
    logger.propagate = False
    return logger


def get_logger(name: str = "x3f-extract") -> logging.Logger:
    """
    Get a logger instance with consistent configuration.

    Args:
        name: Logger name

    Returns:
        Configured logger instance
    """
    return setup_logger(name)
