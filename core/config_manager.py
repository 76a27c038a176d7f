"""
Configuration Manager

Per-service facade over the modular config package.

Usage:
    from core.config_manager import ConfigManager

    config_manager = ConfigManager("credit_service")
    config = config_manager.get_service_config()
    host, port = config_manager.discover_service(
        service_name="postgres_service",
        default_host="localhost",
        default_port=5432,
        env_host_key="POSTGRES_HOST",
        env_port_key="POSTGRES_PORT",
    )
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional, Tuple

from core.config import AppConfig

logger = logging.getLogger(__name__)


@dataclass
class ServiceRuntimeConfig:
    """Flattened view of the settings a service reads at startup"""
    service_name: str
    service_host: str
    service_port: int
    debug: bool
    log_level: str
    storage_backend: str
    pricing_policy: str
    default_page_size: int
    max_page_size: int
    lock_timeout_ms: int
    db_schema: str


class ConfigManager:
    """Configuration access for one microservice"""

    def __init__(self, service_name: str, app_config: Optional[AppConfig] = None):
        self.service_name = service_name
        self.app_config = app_config or AppConfig.from_env(service_name)

    def get_service_config(self) -> ServiceRuntimeConfig:
        service = self.app_config.service
        credit = self.app_config.credit
        return ServiceRuntimeConfig(
            service_name=service.service_name,
            service_host=service.service_host,
            service_port=service.service_port,
            debug=service.debug,
            log_level=service.log_level,
            storage_backend=credit.storage_backend,
            pricing_policy=credit.pricing_policy,
            default_page_size=credit.default_page_size,
            max_page_size=credit.max_page_size,
            lock_timeout_ms=credit.lock_timeout_ms,
            db_schema=credit.db_schema,
        )

    def discover_service(
        self,
        service_name: str,
        default_host: str,
        default_port: int,
        env_host_key: Optional[str] = None,
        env_port_key: Optional[str] = None,
    ) -> Tuple[str, int]:
        """
        Resolve host and port for a dependency.

        Priority: environment variable → default

        Returns:
            (host, port) tuple
        """
        host = os.getenv(env_host_key) if env_host_key else None
        port_value = os.getenv(env_port_key) if env_port_key else None

        try:
            port = int(port_value) if port_value else default_port
        except ValueError:
            logger.warning(f"Invalid port '{port_value}' for {service_name}, using {default_port}")
            port = default_port

        resolved_host = host or default_host
        logger.debug(f"Resolved {service_name} at {resolved_host}:{port}")
        return resolved_host, port

    def print_config_summary(self, show_secrets: bool = False):
        """Log the effective configuration (development aid)"""
        config = self.get_service_config()
        infra = self.app_config.infra
        password = infra.postgres_password if show_secrets else "***"

        logger.info(f"=== {self.service_name} configuration ===")
        logger.info(f"  listen: {config.service_host}:{config.service_port} (debug={config.debug})")
        logger.info(f"  log_level: {config.log_level}")
        logger.info(f"  storage_backend: {config.storage_backend}")
        logger.info(f"  pricing_policy: {config.pricing_policy}")
        logger.info(f"  ledger page size: default={config.default_page_size} max={config.max_page_size}")
        logger.info(
            f"  postgres: {infra.postgres_user}:{password}@{infra.postgres_host}:"
            f"{infra.postgres_port}/{infra.postgres_db} schema={config.db_schema}"
        )


__all__ = ["ConfigManager", "ServiceRuntimeConfig"]
