#!/usr/bin/env python3
"""Credit ledger configuration

Storage backend, pricing policy and ledger query bounds for credit_service.
"""
import os
import re
from dataclasses import dataclass


def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


STORAGE_BACKENDS = ("postgres", "memory")
PRICING_POLICIES = ("table", "caller", "caller_with_table_fallback")
SCHEMA_NAME_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


@dataclass
class CreditConfig:
    """Credit ledger settings"""

    # Balance store backend: "postgres" or "memory"
    storage_backend: str = "postgres"

    # Price source: "table", "caller" or "caller_with_table_fallback"
    pricing_policy: str = "caller_with_table_fallback"

    # Ledger pagination
    default_page_size: int = 50
    max_page_size: int = 100

    # Upper bound on waiting for an organization's balance lock (postgres)
    lock_timeout_ms: int = 5000

    # Database schema holding the credit tables
    db_schema: str = "credit"

    def __post_init__(self):
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ValueError(f"storage_backend must be one of: {list(STORAGE_BACKENDS)}")
        if self.pricing_policy not in PRICING_POLICIES:
            raise ValueError(f"pricing_policy must be one of: {list(PRICING_POLICIES)}")
        if self.max_page_size < 1:
            raise ValueError("max_page_size must be >= 1")
        # Interpolated into SQL as an unquoted identifier
        if not SCHEMA_NAME_PATTERN.fullmatch(self.db_schema or ""):
            raise ValueError(f"db_schema must be a plain SQL identifier, got {self.db_schema!r}")

    @classmethod
    def from_env(cls) -> 'CreditConfig':
        """Load credit config from environment variables"""
        return cls(
            storage_backend=os.getenv("CREDIT_STORAGE_BACKEND", "postgres").lower(),
            pricing_policy=os.getenv("CREDIT_PRICING_POLICY", "caller_with_table_fallback").lower(),
            default_page_size=_int(os.getenv("CREDIT_LEDGER_DEFAULT_PAGE_SIZE", "50"), 50),
            max_page_size=_int(os.getenv("CREDIT_LEDGER_MAX_PAGE_SIZE", "100"), 100),
            lock_timeout_ms=_int(os.getenv("CREDIT_LOCK_TIMEOUT_MS", "5000"), 5000),
            db_schema=os.getenv("CREDIT_DB_SCHEMA", "credit"),
        )
