"""
Credit Service Component Test Fixtures

Provides the service wired to the in-memory repository:
- InMemoryCreditRepository seeded with the default price list
- FailingCommitRepository: fails the commit step on demand
- MockEventBus: records published events
"""

import pytest

from microservices.credit_service.credit_service import CreditService
from microservices.credit_service.memory_repository import InMemoryCreditRepository
from microservices.credit_service.models import DEFAULT_PRICING
from microservices.credit_service.pricing import FallbackPricingResolver, TablePricingResolver
from microservices.credit_service.protocols import StorageFailureError
from tests.component.mocks import MockEventBus
from tests.contracts.credit.data_contract import CreditTestDataFactory


class FailingCommitRepository(InMemoryCreditRepository):
    """In-memory repository whose next commit fails like a dropped connection"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_commits = 0

    def _commit(self, *args, **kwargs):
        if self.fail_commits:
            self.fail_commits -= 1
            raise StorageFailureError("connection reset during commit", reason="connection")
        return super()._commit(*args, **kwargs)


@pytest.fixture
def factory() -> CreditTestDataFactory:
    return CreditTestDataFactory()


@pytest.fixture
def org_id(factory) -> str:
    return factory.make_organization_id()


@pytest.fixture
def memory_repository() -> InMemoryCreditRepository:
    return InMemoryCreditRepository(pricing=DEFAULT_PRICING)


@pytest.fixture
def credit_service(memory_repository, mock_event_bus: MockEventBus) -> CreditService:
    """Service with the default caller-with-table-fallback policy"""
    return CreditService(
        repository=memory_repository,
        pricing_resolver=FallbackPricingResolver(memory_repository),
        event_bus=mock_event_bus,
    )


@pytest.fixture
def table_credit_service(memory_repository, mock_event_bus: MockEventBus) -> CreditService:
    """Service that always prices from the table"""
    return CreditService(
        repository=memory_repository,
        pricing_resolver=TablePricingResolver(memory_repository),
        event_bus=mock_event_bus,
    )


@pytest.fixture
def failing_repository() -> FailingCommitRepository:
    return FailingCommitRepository(pricing=DEFAULT_PRICING)


@pytest.fixture
def failing_credit_service(failing_repository, mock_event_bus: MockEventBus) -> CreditService:
    return CreditService(
        repository=failing_repository,
        pricing_resolver=FallbackPricingResolver(failing_repository),
        event_bus=mock_event_bus,
    )
