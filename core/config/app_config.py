#!/usr/bin/env python3
"""Application configuration

Combines all sub-configs for the credit ledger platform.
"""
from dataclasses import dataclass, field

from .credit_config import CreditConfig
from .infra_config import InfraConfig
from .logging_config import LoggingConfig
from .service_config import ServiceConfig


@dataclass
class AppConfig:
    """Main configuration"""

    service: ServiceConfig = field(default_factory=ServiceConfig)
    infra: InfraConfig = field(default_factory=InfraConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    credit: CreditConfig = field(default_factory=CreditConfig)

    @classmethod
    def from_env(cls, service_name: str = "credit_service") -> 'AppConfig':
        """Load all configuration from environment variables"""
        return cls(
            service=ServiceConfig.from_env(service_name),
            infra=InfraConfig.from_env(),
            logging=LoggingConfig.from_env(),
            credit=CreditConfig.from_env(),
        )
