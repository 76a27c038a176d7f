#!/usr/bin/env python3
"""
Core Module for Microservices Architecture

Shared infrastructure components for the credit ledger microservices.

COMPONENTS:
    - config/: Modular dataclass configuration loaded from environment
    - config_manager.py: Per-service configuration facade
    - logger.py: Service logger setup
    - postgres_client.py: asyncpg pool wrapper
    - auth_dependencies.py: FastAPI identity dependencies

USAGE:
    from core.config_manager import ConfigManager

    # Initialize configuration for a service
    config = ConfigManager("credit_service")
"""

from .config_manager import ConfigManager, ServiceRuntimeConfig
from .logger import setup_service_logger

__all__ = [
    "ConfigManager",
    "ServiceRuntimeConfig",
    "setup_service_logger",
]

__version__ = "1.0.0"
