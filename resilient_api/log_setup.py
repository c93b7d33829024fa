"""
================================================================================
Logging Setup
================================================================================

Centralized Loguru configuration for the API client.

Usage:
    from resilient_api.log_setup import init_logger

    init_logger()  # Use configuration defaults
    init_logger(level="DEBUG", log_file="logs/api.log")

================================================================================
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from .config_loader import ConfigLoader


DEFAULT_LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

_logger_initialized = False


def init_logger(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    config: Optional[ConfigLoader] = None,
    force: bool = False,
) -> None:
    """
    Initializes the loguru logger with standard settings.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to config value.
        log_file: Optional file path to write logs to. Defaults to config value.
        config: Configuration source for logging.* keys
        force: Reconfigure even if already initialized
    """
    global _logger_initialized

    if _logger_initialized and not force:
        return

    config = config or ConfigLoader()
    level = (level or config.get("logging.level", "INFO")).upper()
    format_string = config.get("logging.format", DEFAULT_LOG_FORMAT)

    # Remove default handler
    logger.remove()

    logger.add(
        sys.stderr,
        format=format_string,
        level=level,
        colorize=True,
    )

    log_file = log_file or config.get("logging.file")
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=format_string,
            level=level,
            rotation=config.get("logging.rotation", "10 MB"),
            retention=config.get("logging.retention", "7 days"),
        )

    _logger_initialized = True
    logger.debug("Logger initialized successfully")


__all__ = ["DEFAULT_LOG_FORMAT", "init_logger"]
