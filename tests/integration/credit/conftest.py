"""
Credit Service Integration Test Fixtures

Provides a CreditRepository connected to a real PostgreSQL database with the
credit schema migrated. Tests are skipped when the database is unreachable.
"""

import uuid
from typing import AsyncGenerator, List

import pytest
import pytest_asyncio

from microservices.credit_service.credit_repository import CreditRepository
from microservices.credit_service.credit_service import CreditService
from microservices.credit_service.pricing import FallbackPricingResolver, TablePricingResolver
from microservices.credit_service.protocols import StorageFailureError
from tests.component.mocks import MockEventBus
from tests.contracts.credit.data_contract import CreditTestDataFactory


@pytest.fixture(scope="session")
def credit_factory():
    """
    Credit test data factory

    Provides CreditTestDataFactory instance for generating test data.
    """
    return CreditTestDataFactory()


@pytest.fixture
def created_orgs() -> List[str]:
    """Organizations written by a test; removed on teardown"""
    return []


@pytest.fixture
def created_actions() -> List[str]:
    """Price list action types written by a test; removed on teardown"""
    return []


@pytest_asyncio.fixture(scope="function")
async def credit_repository(created_orgs, created_actions) -> AsyncGenerator[CreditRepository, None]:
    """
    CreditRepository for the configured PostgreSQL database

    Applies the bundled migrations, and deletes every row written for the
    organizations in created_orgs after the test.
    """
    repository = CreditRepository()
    try:
        await repository.initialize()
        await repository.apply_migrations()
    except StorageFailureError as e:
        await repository.close()
        pytest.skip(f"PostgreSQL not available: {e}")

    yield repository

    if created_orgs:
        schema = repository.schema
        for table in ("credit_grants", "credit_ledger", "credit_balances"):
            await repository.db.execute(
                f"DELETE FROM {schema}.{table} WHERE organization_id = ANY($1::text[])",
                params=[created_orgs],
            )
    if created_actions:
        await repository.db.execute(
            f"DELETE FROM {repository.schema}.credit_pricing WHERE action_type = ANY($1::text[])",
            params=[created_actions],
        )
    await repository.close()


@pytest_asyncio.fixture(scope="function")
async def alt_schema_repository(monkeypatch) -> AsyncGenerator[CreditRepository, None]:
    """
    CreditRepository migrated into a throwaway schema named by CREDIT_DB_SCHEMA

    The schema is dropped after the test.
    """
    monkeypatch.setenv("CREDIT_DB_SCHEMA", f"credit_it_{uuid.uuid4().hex[:8]}")
    repository = CreditRepository()
    try:
        await repository.initialize()
    except StorageFailureError as e:
        await repository.close()
        pytest.skip(f"PostgreSQL not available: {e}")

    try:
        await repository.apply_migrations()
        yield repository
    finally:
        await repository.db.execute(f"DROP SCHEMA IF EXISTS {repository.schema} CASCADE")
        await repository.close()


@pytest.fixture
def org_id(credit_factory, created_orgs) -> str:
    organization_id = credit_factory.make_organization_id()
    created_orgs.append(organization_id)
    return organization_id


@pytest.fixture
def db_event_bus() -> MockEventBus:
    return MockEventBus()


@pytest.fixture
def db_credit_service(credit_repository, db_event_bus) -> CreditService:
    return CreditService(
        repository=credit_repository,
        pricing_resolver=FallbackPricingResolver(credit_repository),
        event_bus=db_event_bus,
    )


@pytest.fixture
def db_table_credit_service(credit_repository, db_event_bus) -> CreditService:
    return CreditService(
        repository=credit_repository,
        pricing_resolver=TablePricingResolver(credit_repository),
        event_bus=db_event_bus,
    )
