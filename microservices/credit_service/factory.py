"""
Credit Service Factory

Factory for creating CreditService with real dependencies.
This is the ONLY module that imports concrete implementations.
"""

import logging
from typing import Optional

from core.config_manager import ConfigManager

from .credit_repository import CreditRepository
from .credit_service import CreditService
from .memory_repository import InMemoryCreditRepository
from .models import DEFAULT_PRICING
from .pricing import create_pricing_resolver
from .protocols import CreditRepositoryProtocol

logger = logging.getLogger(__name__)


def create_credit_repository(config: ConfigManager) -> CreditRepositoryProtocol:
    """Build the balance store selected by CREDIT_STORAGE_BACKEND"""
    backend = config.get_service_config().storage_backend

    if backend == "memory":
        logger.info("Using in-memory credit repository")
        return InMemoryCreditRepository(pricing=DEFAULT_PRICING)

    logger.info("Using PostgreSQL credit repository")
    return CreditRepository(config=config)


def create_credit_service(
    config: Optional[ConfigManager] = None,
    event_bus=None,
    repository: Optional[CreditRepositoryProtocol] = None,
) -> CreditService:
    """
    Create CreditService with all real dependencies

    Args:
        config: Optional config manager (creates default if not provided)
        event_bus: Optional event bus for event publishing
        repository: Optional repository (built from config if not provided)

    Returns:
        Fully initialized CreditService instance
    """
    # Initialize config if not provided
    if config is None:
        config = ConfigManager("credit_service")
    service_config = config.get_service_config()

    # Create repository
    if repository is None:
        repository = create_credit_repository(config)

    pricing_resolver = create_pricing_resolver(service_config.pricing_policy, repository)
    logger.info(f"Credit pricing policy: {service_config.pricing_policy}")

    # Create and return service
    return CreditService(
        repository=repository,
        pricing_resolver=pricing_resolver,
        event_bus=event_bus,
        default_page_size=service_config.default_page_size,
        max_page_size=service_config.max_page_size,
    )


__all__ = ["create_credit_repository", "create_credit_service"]
