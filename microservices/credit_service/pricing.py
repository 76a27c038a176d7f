"""
Credit Pricing Resolvers

Pluggable price policies for billable actions. The mutation engine only
needs a positive integer at the point of debit; these resolvers decide where
that integer comes from.
"""

import logging
from typing import Any, Optional

from .models import MAX_CREDITS, PricingPolicyEnum
from .protocols import (
    CreditRepositoryProtocol,
    InvalidAmountError,
    PricingNotFoundError,
)

logger = logging.getLogger(__name__)


def is_positive_int(value: Any) -> bool:
    """True for int values > 0 (bool is rejected)"""
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_credit_amount(value: Any, field_name: str = "credits_required") -> int:
    """Return value if it is a positive integer within MAX_CREDITS, else raise InvalidAmountError"""
    if value is None:
        raise InvalidAmountError(f"{field_name} is required", amount=value)
    if not is_positive_int(value):
        raise InvalidAmountError(
            f"Invalid {field_name}: {value!r}. Must be a positive integer.", amount=value
        )
    if value > MAX_CREDITS:
        raise InvalidAmountError(
            f"Invalid {field_name}: {value}. Must not exceed {MAX_CREDITS}.", amount=value
        )
    return value


class TablePricingResolver:
    """Price comes from the credit_pricing table; supplied values are not used"""

    policy = PricingPolicyEnum.TABLE.value

    def __init__(self, repository: CreditRepositoryProtocol):
        self.repository = repository

    async def lookup(self, action_type: str, platform: Optional[str]) -> int:
        pricing = await self.repository.get_pricing(action_type, platform) if platform else None
        if not pricing:
            raise PricingNotFoundError(
                f"No pricing found for action_type={action_type}, platform={platform}",
                action_type=action_type,
                platform=platform,
            )
        return pricing["credits_required"]

    async def resolve_price(
        self,
        action_type: str,
        platform: Optional[str],
        supplied_credits: Optional[int] = None,
    ) -> int:
        if supplied_credits is not None:
            validate_credit_amount(supplied_credits)

        credits = await self.lookup(action_type, platform)

        if supplied_credits is not None and supplied_credits != credits:
            logger.warning(
                f"Ignoring caller price {supplied_credits} for {action_type}/{platform}; "
                f"price table says {credits}"
            )
        return credits


class CallerPricingResolver:
    """Price is supplied by the caller and passed through after validation"""

    policy = PricingPolicyEnum.CALLER.value

    async def resolve_price(
        self,
        action_type: str,
        platform: Optional[str],
        supplied_credits: Optional[int] = None,
    ) -> int:
        return validate_credit_amount(supplied_credits)


class FallbackPricingResolver:
    """Caller-supplied price when given, otherwise the price table"""

    policy = PricingPolicyEnum.CALLER_WITH_TABLE_FALLBACK.value

    def __init__(self, repository: CreditRepositoryProtocol):
        self.table = TablePricingResolver(repository)

    async def resolve_price(
        self,
        action_type: str,
        platform: Optional[str],
        supplied_credits: Optional[int] = None,
    ) -> int:
        if supplied_credits is not None:
            return validate_credit_amount(supplied_credits)
        return await self.table.lookup(action_type, platform)


def create_pricing_resolver(policy: str, repository: CreditRepositoryProtocol):
    """Build the resolver for a configured policy name"""
    if policy == PricingPolicyEnum.TABLE.value:
        return TablePricingResolver(repository)
    if policy == PricingPolicyEnum.CALLER.value:
        return CallerPricingResolver()
    if policy == PricingPolicyEnum.CALLER_WITH_TABLE_FALLBACK.value:
        return FallbackPricingResolver(repository)
    raise ValueError(
        f"pricing policy must be one of: {[p.value for p in PricingPolicyEnum]}"
    )


__all__ = [
    "is_positive_int",
    "validate_credit_amount",
    "TablePricingResolver",
    "CallerPricingResolver",
    "FallbackPricingResolver",
    "create_pricing_resolver",
]
