"""
Credit Service Contracts

This module provides the contracts for credit_service testing.
"""

from .data_contract import (
    # Enums
    PlatformContractEnum,
    DEFAULT_PRICES,
    # Response Contracts
    BalanceResponseContract,
    CreditCheckResponseContract,
    DebitResponseContract,
    GrantResponseContract,
    LedgerEntryContract,
    PaginatedLedgerResponseContract,
    ErrorResponseContract,
    # Factory
    CreditTestDataFactory,
    # Builders
    DebitRequestBuilder,
)

__all__ = [
    # Enums
    "PlatformContractEnum",
    "DEFAULT_PRICES",
    # Response Contracts
    "BalanceResponseContract",
    "CreditCheckResponseContract",
    "DebitResponseContract",
    "GrantResponseContract",
    "LedgerEntryContract",
    "PaginatedLedgerResponseContract",
    "ErrorResponseContract",
    # Factory
    "CreditTestDataFactory",
    # Builders
    "DebitRequestBuilder",
]
