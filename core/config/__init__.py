#!/usr/bin/env python3
"""Modular configuration system for the credit ledger

Configuration hierarchy:
- service_config: HTTP listener and internal auth settings
- infra_config: PostgreSQL connection and pool
- logging_config: Logging configuration
- credit_config: Storage backend, pricing policy, ledger pagination
"""
import os
from dotenv import load_dotenv
from .app_config import AppConfig
from .credit_config import CreditConfig, PRICING_POLICIES, STORAGE_BACKENDS
from .infra_config import InfraConfig
from .logging_config import LoggingConfig
from .service_config import ServiceConfig

# Load environment file based on ENV
env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
env_files = {
    "development": "deployment/environments/dev.env",
    "dev": "deployment/environments/dev.env",
    "testing": "deployment/environments/test.env",
    "test": "deployment/environments/test.env",
    "staging": "deployment/environments/staging.env",
    "production": "deployment/environments/production.env",
}
env_file = env_files.get(env, "deployment/environments/dev.env")
load_dotenv(env_file, override=False)

__all__ = [
    'AppConfig',
    'CreditConfig',
    'InfraConfig',
    'LoggingConfig',
    'ServiceConfig',
    'PRICING_POLICIES',
    'STORAGE_BACKENDS',
]
