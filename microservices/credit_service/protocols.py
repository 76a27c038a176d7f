"""
Credit Service Protocols

Defines interfaces for dependency injection and testing.
Following the protocol-based architecture pattern.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable


# ====================
# Balance Mutation
# ====================


@dataclass
class BalanceMutation:
    """
    Outcome of a mutation callback evaluated under the organization lock.

    new_balance must equal current balance + ledger_entry["credits_delta"].
    grant is only set for administrative grants and is written in the same
    transaction as the ledger entry.
    """
    new_balance: int
    ledger_entry: Dict[str, Any]
    grant: Optional[Dict[str, Any]] = None


# mutate(current_balance) -> BalanceMutation, or raise a CreditServiceError to abort
MutationCallback = Callable[[int], BalanceMutation]


# ====================
# Repository Protocol
# ====================


@runtime_checkable
class CreditRepositoryProtocol(Protocol):
    """Repository interface for the balance store, ledger and price table"""

    async def initialize(self) -> None:
        """Open connections / prepare storage"""
        ...

    async def close(self) -> None:
        """Release connections"""
        ...

    async def health_check(self) -> Dict[str, Any]:
        """
        Report storage health.

        Returns:
            Dictionary with at least a boolean 'healthy' key
        """
        ...

    async def get_balance(self, organization_id: str) -> Optional[Dict[str, Any]]:
        """
        Read the balance row without locking or creating it.

        Args:
            organization_id: Organization identifier

        Returns:
            Balance record or None if the organization never transacted
        """
        ...

    async def apply_mutation(
        self,
        organization_id: str,
        mutate: MutationCallback,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Run mutate() under the organization's exclusive lock and commit its result.

        The balance row is materialized with balance 0 if absent. If an
        idempotency_key is given and a ledger entry with that key already
        exists for the organization, mutate() is not called and the stored
        entry is returned with replayed=True.

        Args:
            organization_id: Organization identifier
            mutate: Callback receiving the locked current balance
            idempotency_key: Optional client request token

        Returns:
            Dict with 'balance_after', 'ledger_entry', 'grant' and 'replayed'

        Raises:
            CreditServiceError: raised by mutate(); nothing is written
            StorageFailureError: storage failed; nothing is written
        """
        ...

    async def list_ledger_entries(
        self,
        organization_id: str,
        filters: Dict[str, Any],
        limit: int,
        offset: int,
    ) -> Dict[str, Any]:
        """
        Page through ledger entries, most recent first.

        Args:
            organization_id: Organization identifier
            filters: Optional start_date, end_date, platform, action_type
            limit: Maximum entries to return
            offset: Entries to skip

        Returns:
            Dict with 'entries' (list) and 'total' (count matching filters)
        """
        ...

    async def get_ledger_summary(self, organization_id: str) -> Dict[str, int]:
        """
        Sum all ledger deltas for an organization.

        Returns:
            Dict with 'ledger_sum' and 'entry_count'
        """
        ...

    async def list_grants(self, organization_id: str, limit: int, offset: int) -> Dict[str, Any]:
        """
        Page through grant records, most recent first.

        Returns:
            Dict with 'grants' (list) and 'total'
        """
        ...

    async def get_pricing(self, action_type: str, platform: str) -> Optional[Dict[str, Any]]:
        """
        Look up a price list row.

        Returns:
            Pricing record or None if not configured
        """
        ...

    async def list_pricing(self) -> List[Dict[str, Any]]:
        """Return every price list row"""
        ...

    async def upsert_pricing(self, action_type: str, platform: str, credits_required: int) -> Dict[str, Any]:
        """
        Create or update a price list row.

        Returns:
            Stored pricing record
        """
        ...


# ====================
# Pricing Protocol
# ====================


@runtime_checkable
class PricingResolverProtocol(Protocol):
    """Maps (action_type, platform) to the credits a billable action costs"""

    policy: str

    async def resolve_price(
        self,
        action_type: str,
        platform: Optional[str],
        supplied_credits: Optional[int] = None,
    ) -> int:
        """
        Resolve the credits required for an action.

        Args:
            action_type: Billable action (e.g. ARTICLE_CREATE)
            platform: Content platform
            supplied_credits: Caller-computed price, if any

        Returns:
            Positive number of credits

        Raises:
            InvalidAmountError: supplied value present but not a positive integer,
                or required by the policy and missing
            PricingNotFoundError: table lookup found no row
        """
        ...


# ====================
# Event Bus Protocol
# ====================


@runtime_checkable
class EventBusProtocol(Protocol):
    """Event bus interface for publishing events"""

    async def publish(self, subject: str, data: Dict[str, Any]) -> None:
        """
        Publish event.

        Args:
            subject: Event subject/topic
            data: Event payload
        """
        ...


# ====================
# Custom Exceptions (no I/O operations)
# ====================


class CreditServiceError(Exception):
    """Base exception for credit service errors"""
    pass


class InvalidAmountError(CreditServiceError, ValueError):
    """Raised when a credit amount is missing, not an integer, or not positive"""

    def __init__(self, message: str, amount: Any = None):
        super().__init__(message)
        self.amount = amount


class InvalidQueryError(CreditServiceError, ValueError):
    """Raised when ledger query parameters are out of range"""
    pass


class PricingNotFoundError(CreditServiceError):
    """Raised when no price is configured for an action/platform pair"""

    def __init__(self, message: str, action_type: Optional[str] = None, platform: Optional[str] = None):
        super().__init__(message)
        self.action_type = action_type
        self.platform = platform


class InsufficientCreditsError(CreditServiceError):
    """Raised when an organization cannot cover a debit"""

    def __init__(
        self,
        message: str,
        available: Optional[int] = None,
        required: Optional[int] = None,
        organization_id: Optional[str] = None,
        article_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.available = available
        self.required = required
        self.organization_id = organization_id
        self.article_id = article_id


class IdempotencyConflictError(CreditServiceError):
    """Raised when an idempotency key is reused for a different debit"""

    def __init__(
        self,
        message: str,
        idempotency_key: Optional[str] = None,
        entry_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.idempotency_key = idempotency_key
        self.entry_id = entry_id


class StorageFailureError(CreditServiceError):
    """Raised when the storage layer fails; the transaction was rolled back"""

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason


__all__ = [
    "BalanceMutation",
    "MutationCallback",
    "CreditRepositoryProtocol",
    "PricingResolverProtocol",
    "EventBusProtocol",
    "CreditServiceError",
    "InvalidAmountError",
    "InvalidQueryError",
    "PricingNotFoundError",
    "InsufficientCreditsError",
    "IdempotencyConflictError",
    "StorageFailureError",
]
