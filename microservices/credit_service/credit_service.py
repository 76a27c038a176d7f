"""
Credit Service - Business Logic Layer

Organization credit ledger:
- Advisory (non-locking) sufficiency check
- Authoritative debit under the organization's balance lock
- Administrative grants with a linked provenance record
- Paginated, filterable ledger reads
- Price list administration and reconciliation checks
"""

import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .events import publish_credit_debited, publish_credit_granted
from .models import MAX_CREDITS, ActionTypeEnum
from .pricing import FallbackPricingResolver, validate_credit_amount
from .protocols import (
    BalanceMutation,
    CreditRepositoryProtocol,
    EventBusProtocol,
    IdempotencyConflictError,
    InsufficientCreditsError,
    InvalidAmountError,
    InvalidQueryError,
    PricingNotFoundError,
    PricingResolverProtocol,
)

logger = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so they compare with stored timestamps"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _require_organization(organization_id: str) -> str:
    if not organization_id or not str(organization_id).strip():
        raise ValueError("organization_id is required")
    return organization_id


class CreditService:
    """
    Credit Service - Core business logic

    Every balance change goes through repository.apply_mutation(), which holds
    the organization's exclusive lock while the mutation callback decides the
    new balance and the ledger entry. Reads never take the lock.
    """

    def __init__(
        self,
        repository: CreditRepositoryProtocol,
        pricing_resolver: Optional[PricingResolverProtocol] = None,
        event_bus: Optional[EventBusProtocol] = None,
        default_page_size: int = 50,
        max_page_size: int = 100,
    ):
        """
        Initialize credit service with dependencies.

        Args:
            repository: Balance store, ledger and price table
            pricing_resolver: Price policy (caller value with table fallback if omitted)
            event_bus: Event bus for publishing events (optional)
            default_page_size: Ledger page size when none is requested
            max_page_size: Upper clamp for ledger page size
        """
        self.repository = repository
        self.pricing_resolver = pricing_resolver or FallbackPricingResolver(repository)
        self.event_bus = event_bus
        self.max_page_size = max(1, max_page_size)
        self.default_page_size = min(max(1, default_page_size), self.max_page_size)

    # ====================
    # Balance
    # ====================

    async def get_balance(self, organization_id: str) -> int:
        """Current balance; 0 for an organization that never transacted"""
        _require_organization(organization_id)
        row = await self.repository.get_balance(organization_id)
        return row["balance"] if row else 0

    async def check_sufficient_credits(
        self,
        organization_id: str,
        action_type: str = ActionTypeEnum.ARTICLE_CREATE.value,
        platform: Optional[str] = None,
        required_credits: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Advisory check before expensive upstream work.

        Not locked and not authoritative: a concurrent debit can drain the
        balance between this check and the real debit.

        Returns:
            {sufficient, balance, required}

        Raises:
            InvalidAmountError: supplied price is not a positive integer
            PricingNotFoundError: no price configured for the pair
        """
        _require_organization(organization_id)
        required = await self.pricing_resolver.resolve_price(action_type, platform, required_credits)
        balance = await self.get_balance(organization_id)

        return {
            "sufficient": balance >= required,
            "balance": balance,
            "required": required,
        }

    # ====================
    # Mutations
    # ====================

    async def debit_credits(
        self,
        organization_id: str,
        platform: Optional[str],
        required_credits: Optional[int] = None,
        user_id: Optional[str] = None,
        article_id: Optional[str] = None,
        action_type: str = ActionTypeEnum.ARTICLE_CREATE.value,
        metadata: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Debit credits for a billable action.

        The balance is re-validated under the organization lock; a failed debit
        writes nothing.

        Args:
            organization_id: Organization to charge
            platform: Content platform of the action
            required_credits: Caller-computed price (policy dependent)
            user_id: Acting user
            article_id: Billable artifact, recorded for provenance
            action_type: Billable action
            metadata: Extra provenance
            idempotency_key: Client request token; a repeat returns the stored result

        Returns:
            {organization_id, balance_after, credits_deducted, entry_id, replayed}

        Raises:
            InvalidAmountError: price missing or not a positive integer
            PricingNotFoundError: table lookup found nothing
            InsufficientCreditsError: balance lower than the price
            IdempotencyConflictError: key already used for a different debit
            StorageFailureError: transaction rolled back, safe to retry
        """
        _require_organization(organization_id)
        credits = await self.pricing_resolver.resolve_price(action_type, platform, required_credits)
        entry_id = f"ledger_{uuid.uuid4().hex}"

        def mutate(current_balance: int) -> BalanceMutation:
            if current_balance < credits:
                raise InsufficientCreditsError(
                    f"Insufficient credits. Required: {credits}, Available: {current_balance}",
                    available=current_balance,
                    required=credits,
                    organization_id=organization_id,
                    article_id=article_id,
                )
            return BalanceMutation(
                new_balance=current_balance - credits,
                ledger_entry={
                    "entry_id": entry_id,
                    "user_id": user_id,
                    "article_id": article_id,
                    "action_type": action_type,
                    "platform": platform,
                    "credits_delta": -credits,
                    "metadata": dict(metadata or {}),
                },
            )

        try:
            result = await self.repository.apply_mutation(organization_id, mutate, idempotency_key)
        except InsufficientCreditsError as e:
            logger.warning(
                f"Debit rejected for organization {organization_id}: required={e.required}, "
                f"available={e.available}, article_id={article_id}"
            )
            raise

        entry = result["ledger_entry"]

        if result["replayed"]:
            stored = (entry.get("platform"), entry.get("action_type"), -entry["credits_delta"])
            if stored != (platform, action_type, credits):
                logger.warning(
                    f"Idempotency key {idempotency_key} reused for a different debit on "
                    f"organization {organization_id} (entry {entry['entry_id']})"
                )
                raise IdempotencyConflictError(
                    f"idempotency_key {idempotency_key} was used for {stored[1]}/{stored[0]} "
                    f"({stored[2]} credits), not {action_type}/{platform} ({credits} credits)",
                    idempotency_key=idempotency_key,
                    entry_id=entry["entry_id"],
                )
            return {
                "organization_id": organization_id,
                "balance_after": entry["balance_after"],
                "credits_deducted": -entry["credits_delta"],
                "entry_id": entry["entry_id"],
                "replayed": True,
            }

        logger.info(
            f"Debited {credits} credits from organization {organization_id} "
            f"({action_type}/{platform}), balance_after={result['balance_after']}"
        )

        await publish_credit_debited(
            self.event_bus,
            organization_id=organization_id,
            ledger_entry=entry,
            credits_deducted=credits,
        )

        return {
            "organization_id": organization_id,
            "balance_after": result["balance_after"],
            "credits_deducted": credits,
            "entry_id": entry["entry_id"],
            "replayed": False,
        }

    async def grant_credits(
        self,
        organization_id: str,
        amount: int,
        granted_by: Optional[str] = None,
        reason: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Grant credits to an organization.

        Writes a positive ledger entry (action_type CREDIT_GRANT) and a grant
        record linked to it, in one transaction.

        Returns:
            {organization_id, balance_after, credits_granted, grant_id, entry_id}

        Raises:
            InvalidAmountError: amount is not a positive integer, or the balance would overflow
            StorageFailureError: transaction rolled back, safe to retry
        """
        _require_organization(organization_id)
        validate_credit_amount(amount, field_name="amount")

        grant_id = f"grant_{uuid.uuid4().hex}"
        entry_id = f"ledger_{uuid.uuid4().hex}"
        extra = dict(metadata or {})

        def mutate(current_balance: int) -> BalanceMutation:
            if current_balance + amount > MAX_CREDITS:
                raise InvalidAmountError(
                    f"Granting {amount} credits would push the balance of {current_balance} "
                    f"past {MAX_CREDITS}",
                    amount=amount,
                )
            return BalanceMutation(
                new_balance=current_balance + amount,
                ledger_entry={
                    "entry_id": entry_id,
                    "user_id": granted_by,
                    "article_id": None,
                    "action_type": ActionTypeEnum.CREDIT_GRANT.value,
                    "platform": None,
                    "credits_delta": amount,
                    "metadata": {**extra, "reason": reason, "grant_id": grant_id},
                },
                grant={
                    "grant_id": grant_id,
                    "granted_by_user_id": granted_by,
                    "credits_amount": amount,
                    "reason": reason,
                    "metadata": extra,
                },
            )

        result = await self.repository.apply_mutation(organization_id, mutate)

        logger.info(
            f"Granted {amount} credits to organization {organization_id} "
            f"by {granted_by or 'system'}, balance_after={result['balance_after']}"
        )

        await publish_credit_granted(
            self.event_bus,
            organization_id=organization_id,
            grant=result["grant"],
            balance_after=result["balance_after"],
        )

        return {
            "organization_id": organization_id,
            "balance_after": result["balance_after"],
            "credits_granted": amount,
            "grant_id": grant_id,
            "entry_id": result["ledger_entry"]["entry_id"],
        }

    # ====================
    # Ledger Queries
    # ====================

    def _page_bounds(self, page: Any, page_size: Any):
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise InvalidQueryError(f"page must be an integer >= 1, got {page!r}")
        if page_size is None:
            page_size = self.default_page_size
        elif isinstance(page_size, bool) or not isinstance(page_size, int):
            raise InvalidQueryError(f"page_size must be an integer, got {page_size!r}")
        page_size = min(max(page_size, 1), self.max_page_size)
        return page, page_size, (page - 1) * page_size

    @staticmethod
    def _total_pages(total: int, page_size: int) -> int:
        return math.ceil(total / page_size) if total else 0

    async def list_ledger(
        self,
        organization_id: str,
        filters: Optional[Dict[str, Any]] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        One page of ledger entries, most recent first.

        Filters: start_date, end_date (inclusive), platform, action_type.
        page_size is clamped to [1, max_page_size].

        Raises:
            InvalidQueryError: page < 1 or start_date after end_date
        """
        _require_organization(organization_id)
        page, page_size, offset = self._page_bounds(page, page_size)

        filters = {k: v for k, v in (filters or {}).items() if v is not None}
        for key in ("start_date", "end_date"):
            if key in filters:
                filters[key] = _as_utc(filters[key])
        if (
            filters.get("start_date") and filters.get("end_date")
            and filters["start_date"] > filters["end_date"]
        ):
            raise InvalidQueryError("start_date must not be after end_date")

        result = await self.repository.list_ledger_entries(
            organization_id, filters, limit=page_size, offset=offset
        )
        total = result["total"]

        return {
            "entries": result["entries"],
            "total": total,
            "page": page,
            "page_size": page_size,
            "total_pages": self._total_pages(total, page_size),
        }

    async def list_grants(
        self,
        organization_id: str,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> Dict[str, Any]:
        """One page of grant records, most recent first"""
        _require_organization(organization_id)
        page, page_size, offset = self._page_bounds(page, page_size)

        result = await self.repository.list_grants(organization_id, limit=page_size, offset=offset)
        total = result["total"]

        return {
            "grants": result["grants"],
            "total": total,
            "page": page,
            "page_size": page_size,
            "total_pages": self._total_pages(total, page_size),
        }

    # ====================
    # Price List
    # ====================

    async def get_pricing(self, action_type: str, platform: str) -> Dict[str, Any]:
        pricing = await self.repository.get_pricing(action_type, platform)
        if not pricing:
            raise PricingNotFoundError(
                f"No pricing found for action_type={action_type}, platform={platform}",
                action_type=action_type,
                platform=platform,
            )
        return pricing

    async def list_pricing(self) -> List[Dict[str, Any]]:
        return await self.repository.list_pricing()

    async def set_pricing(self, action_type: str, platform: str, credits_required: int) -> Dict[str, Any]:
        """Create or update a price; balances and ledger are untouched"""
        validate_credit_amount(credits_required)
        if not action_type or not platform:
            raise ValueError("action_type and platform are required")
        return await self.repository.upsert_pricing(action_type, platform, credits_required)

    # ====================
    # Reconciliation
    # ====================

    async def verify_reconciliation(self, organization_id: str) -> Dict[str, Any]:
        """
        Compare the stored balance with the sum of the organization's ledger
        deltas. Read-only; a mismatch is logged, not repaired.
        """
        _require_organization(organization_id)
        balance = await self.get_balance(organization_id)
        summary = await self.repository.get_ledger_summary(organization_id)
        consistent = balance == summary["ledger_sum"]

        if not consistent:
            logger.error(
                f"Ledger mismatch for organization {organization_id}: "
                f"balance={balance}, ledger_sum={summary['ledger_sum']}"
            )

        return {
            "organization_id": organization_id,
            "balance": balance,
            "ledger_sum": summary["ledger_sum"],
            "entry_count": summary["entry_count"],
            "consistent": consistent,
        }
