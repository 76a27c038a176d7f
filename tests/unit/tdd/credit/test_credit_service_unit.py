"""
Credit Service Unit Tests

Business logic in isolation: the repository is an AsyncMock, and the
mutation callbacks the service hands to apply_mutation() are exercised
directly.
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock

from microservices.credit_service.credit_service import CreditService
from microservices.credit_service.models import MAX_CREDITS
from microservices.credit_service.pricing import CallerPricingResolver
from microservices.credit_service.protocols import (
    BalanceMutation,
    IdempotencyConflictError,
    InsufficientCreditsError,
    InvalidAmountError,
    InvalidQueryError,
    PricingNotFoundError,
)

pytestmark = [pytest.mark.unit, pytest.mark.tdd]


def make_service(**kwargs):
    repository = AsyncMock()
    repository.list_ledger_entries.return_value = {"entries": [], "total": 0}
    repository.list_grants.return_value = {"grants": [], "total": 0}
    service = CreditService(repository, pricing_resolver=CallerPricingResolver(), **kwargs)
    return service, repository


def captured_mutation(repository):
    """The mutate callback passed to the last apply_mutation() call"""
    args, _ = repository.apply_mutation.call_args
    return args[1]


class TestDebitCallback:

    @pytest.mark.asyncio
    async def test_callback_debits_current_balance(self):
        service, repository = make_service()
        repository.apply_mutation.return_value = {
            "balance_after": 90,
            "ledger_entry": {"entry_id": "ledger_x", "balance_after": 90, "credits_delta": -10},
            "grant": None,
            "replayed": False,
        }

        await service.debit_credits("org_1", platform="blog", required_credits=10, user_id="user_1")

        mutate = captured_mutation(repository)
        mutation = mutate(100)
        assert isinstance(mutation, BalanceMutation)
        assert mutation.new_balance == 90
        assert mutation.ledger_entry["credits_delta"] == -10
        assert mutation.ledger_entry["user_id"] == "user_1"
        assert mutation.ledger_entry["action_type"] == "ARTICLE_CREATE"
        assert mutation.grant is None

    @pytest.mark.asyncio
    async def test_callback_allows_exact_balance(self):
        service, repository = make_service()
        repository.apply_mutation.return_value = {
            "balance_after": 0,
            "ledger_entry": {"entry_id": "ledger_x", "balance_after": 0, "credits_delta": -10},
            "grant": None,
            "replayed": False,
        }
        await service.debit_credits("org_1", platform="blog", required_credits=10)

        assert captured_mutation(repository)(10).new_balance == 0

    @pytest.mark.asyncio
    async def test_callback_raises_when_short(self):
        service, repository = make_service()
        repository.apply_mutation.return_value = {
            "balance_after": 0,
            "ledger_entry": {"entry_id": "ledger_x", "balance_after": 0, "credits_delta": -10},
            "grant": None,
            "replayed": False,
        }
        await service.debit_credits("org_1", platform="blog", required_credits=10, article_id="art_1")

        with pytest.raises(InsufficientCreditsError) as exc_info:
            captured_mutation(repository)(5)
        error = exc_info.value
        assert (error.required, error.available) == (10, 5)
        assert error.article_id == "art_1"
        assert str(error) == "Insufficient credits. Required: 10, Available: 5"

    @pytest.mark.asyncio
    async def test_invalid_amount_never_reaches_repository(self):
        service, repository = make_service()
        with pytest.raises(InvalidAmountError):
            await service.debit_credits("org_1", platform="blog", required_credits=0)
        repository.apply_mutation.assert_not_called()

    @pytest.mark.asyncio
    async def test_replay_returns_stored_values(self):
        service, repository = make_service()
        repository.apply_mutation.return_value = {
            "balance_after": 40,
            "ledger_entry": {
                "entry_id": "ledger_r", "balance_after": 40, "credits_delta": -10,
                "platform": "blog", "action_type": "ARTICLE_CREATE",
            },
            "grant": None,
            "replayed": True,
        }
        result = await service.debit_credits(
            "org_1", platform="blog", required_credits=10, idempotency_key="key_1"
        )
        assert result == {
            "organization_id": "org_1",
            "balance_after": 40,
            "credits_deducted": 10,
            "entry_id": "ledger_r",
            "replayed": True,
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("platform, credits", [("twitter", 10), ("blog", 25)])
    async def test_replay_of_different_debit_conflicts(self, platform, credits):
        service, repository = make_service()
        repository.apply_mutation.return_value = {
            "balance_after": 40,
            "ledger_entry": {
                "entry_id": "ledger_r", "balance_after": 40, "credits_delta": -10,
                "platform": "blog", "action_type": "ARTICLE_CREATE",
            },
            "grant": None,
            "replayed": True,
        }
        with pytest.raises(IdempotencyConflictError) as exc_info:
            await service.debit_credits(
                "org_1", platform=platform, required_credits=credits, idempotency_key="key_1"
            )
        assert exc_info.value.entry_id == "ledger_r"
        assert exc_info.value.idempotency_key == "key_1"

    @pytest.mark.asyncio
    async def test_empty_organization_rejected(self):
        service, repository = make_service()
        with pytest.raises(ValueError):
            await service.debit_credits("", platform="blog", required_credits=1)


class TestGrantCallback:

    @pytest.mark.asyncio
    async def test_grant_links_ledger_entry_and_record(self):
        service, repository = make_service()
        repository.apply_mutation.return_value = {
            "balance_after": 50,
            "ledger_entry": {"entry_id": "ledger_y"},
            "grant": {
                "grant_id": "grant_y",
                "ledger_entry_id": "ledger_y",
                "credits_amount": 50,
            },
            "replayed": False,
        }

        result = await service.grant_credits("org_1", 50, granted_by="admin_1", reason="trial")

        mutation = captured_mutation(repository)(0)
        assert mutation.new_balance == 50
        assert mutation.ledger_entry["credits_delta"] == 50
        assert mutation.ledger_entry["action_type"] == "CREDIT_GRANT"
        assert mutation.ledger_entry["metadata"]["reason"] == "trial"
        assert mutation.ledger_entry["metadata"]["grant_id"] == mutation.grant["grant_id"]
        assert mutation.grant["granted_by_user_id"] == "admin_1"
        assert mutation.grant["credits_amount"] == 50
        assert result["grant_id"] == mutation.grant["grant_id"]

    @pytest.mark.asyncio
    async def test_callback_refuses_balance_overflow(self):
        service, repository = make_service()
        repository.apply_mutation.return_value = {
            "balance_after": 10,
            "ledger_entry": {"entry_id": "ledger_y"},
            "grant": {"grant_id": "grant_y"},
            "replayed": False,
        }
        await service.grant_credits("org_1", 10)

        mutate = captured_mutation(repository)
        assert mutate(MAX_CREDITS - 10).new_balance == MAX_CREDITS
        with pytest.raises(InvalidAmountError):
            mutate(MAX_CREDITS - 9)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -1, True, None, 2**31])
    async def test_invalid_grant_amount(self, amount):
        service, repository = make_service()
        with pytest.raises(InvalidAmountError):
            await service.grant_credits("org_1", amount)
        repository.apply_mutation.assert_not_called()


class TestLedgerPagination:

    @pytest.mark.asyncio
    async def test_default_page_size(self):
        service, repository = make_service()
        result = await service.list_ledger("org_1")
        assert result["page"] == 1
        assert result["page_size"] == 50
        assert result["total_pages"] == 0
        repository.list_ledger_entries.assert_awaited_once_with("org_1", {}, limit=50, offset=0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("requested, clamped", [(0, 1), (-3, 1), (101, 100), (1000, 100), (25, 25)])
    async def test_page_size_clamped(self, requested, clamped):
        service, _ = make_service()
        result = await service.list_ledger("org_1", page_size=requested)
        assert result["page_size"] == clamped

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page", [0, -1])
    async def test_page_below_one_rejected(self, page):
        service, _ = make_service()
        with pytest.raises(InvalidQueryError):
            await service.list_ledger("org_1", page=page)

    @pytest.mark.asyncio
    async def test_offset_and_total_pages(self):
        service, repository = make_service()
        repository.list_ledger_entries.return_value = {"entries": [], "total": 101}
        result = await service.list_ledger("org_1", page=3, page_size=50)
        assert result["total_pages"] == 3
        repository.list_ledger_entries.assert_awaited_once_with("org_1", {}, limit=50, offset=100)

    @pytest.mark.asyncio
    async def test_naive_dates_treated_as_utc(self):
        service, repository = make_service()
        await service.list_ledger("org_1", filters={"start_date": datetime(2025, 1, 1), "platform": None})
        filters = repository.list_ledger_entries.call_args.args[1]
        assert filters == {"start_date": datetime(2025, 1, 1, tzinfo=timezone.utc)}

    @pytest.mark.asyncio
    async def test_inverted_date_range_rejected(self):
        service, _ = make_service()
        with pytest.raises(InvalidQueryError):
            await service.list_ledger("org_1", filters={
                "start_date": datetime(2025, 2, 1, tzinfo=timezone.utc),
                "end_date": datetime(2025, 1, 1, tzinfo=timezone.utc),
            })

    def test_configured_default_capped_by_max(self):
        service, _ = make_service(default_page_size=500, max_page_size=100)
        assert service.default_page_size == 100


class TestPricingAndReconciliation:

    @pytest.mark.asyncio
    async def test_get_pricing_missing(self):
        service, repository = make_service()
        repository.get_pricing.return_value = None
        with pytest.raises(PricingNotFoundError):
            await service.get_pricing("ARTICLE_CREATE", "blog")

    @pytest.mark.asyncio
    async def test_set_pricing_validates(self):
        service, repository = make_service()
        with pytest.raises(InvalidAmountError):
            await service.set_pricing("ARTICLE_CREATE", "blog", 0)
        repository.upsert_pricing.assert_not_called()

    @pytest.mark.asyncio
    async def test_reconciliation_mismatch_reported(self):
        service, repository = make_service()
        repository.get_balance.return_value = {"organization_id": "org_1", "balance": 10}
        repository.get_ledger_summary.return_value = {"ledger_sum": 15, "entry_count": 2}

        result = await service.verify_reconciliation("org_1")
        assert result["consistent"] is False
        assert result["ledger_sum"] == 15

    @pytest.mark.asyncio
    async def test_unknown_organization_has_zero_balance(self):
        service, repository = make_service()
        repository.get_balance.return_value = None
        assert await service.get_balance("org_new") == 0
