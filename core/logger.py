"""
Service Logger Setup

Configures the standard logging module once per service process.
"""

import logging
import sys
from typing import Optional

from core.config import LoggingConfig

_configured = set()


def setup_service_logger(
    service_name: str,
    level: Optional[str] = None,
    config: Optional[LoggingConfig] = None,
) -> logging.Logger:
    """
    Configure root handlers and return the service logger.

    Args:
        service_name: Logger name for the service
        level: Log level name (overrides config.log_level)
        config: Logging configuration (loaded from env if not provided)

    Returns:
        Logger named after the service
    """
    config = config or LoggingConfig.from_env()
    level_name = (level or config.log_level or "INFO").upper()
    log_level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    if service_name not in _configured:
        formatter = logging.Formatter(config.log_format)

        if config.enable_console:
            console = logging.StreamHandler(sys.stdout)
            console.setFormatter(formatter)
            root.addHandler(console)

        if config.log_file:
            file_handler = logging.FileHandler(config.log_file)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

        _configured.add(service_name)

    root.setLevel(log_level)

    # asyncpg and uvicorn access logs are noisy at DEBUG
    logging.getLogger("asyncpg").setLevel(max(log_level, logging.INFO))
    logging.getLogger("uvicorn.access").setLevel(max(log_level, logging.INFO))

    logger = logging.getLogger(service_name)
    logger.setLevel(log_level)
    return logger


__all__ = ["setup_service_logger"]
