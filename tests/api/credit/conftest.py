"""
Credit Service API Test Configuration

Fixtures for testing credit_service HTTP endpoints in-process: the FastAPI app
is served through httpx's ASGI transport with a memory-backed CreditService
installed in place of the one the lifespan would build.
"""
import uuid
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio

from microservices.credit_service import main as credit_main
from microservices.credit_service.credit_service import CreditService
from microservices.credit_service.memory_repository import InMemoryCreditRepository
from microservices.credit_service.models import DEFAULT_PRICING
from microservices.credit_service.pricing import FallbackPricingResolver
from tests.component.mocks import MockEventBus


# =============================================================================
# Configuration
# =============================================================================

CREDIT_API_PATH = "/api/v1/credits"
ADMIN_HEADERS = {"X-User-Id": "admin_api_test"}


# =============================================================================
# Service and Client
# =============================================================================

@pytest.fixture
def api_event_bus() -> MockEventBus:
    return MockEventBus()


@pytest.fixture
def api_credit_service(monkeypatch, api_event_bus) -> CreditService:
    """Memory-backed service installed as the app's global"""
    repository = InMemoryCreditRepository(pricing=DEFAULT_PRICING)
    service = CreditService(
        repository=repository,
        pricing_resolver=FallbackPricingResolver(repository),
        event_bus=api_event_bus,
    )
    monkeypatch.setattr(credit_main, "credit_service", service)
    return service


@pytest_asyncio.fixture
async def http_client(api_credit_service) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client bound to the credit service app"""
    transport = httpx.ASGITransport(app=credit_main.app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test", timeout=30.0) as client:
        yield client


# =============================================================================
# Test Data Helpers
# =============================================================================

def unique_org_id() -> str:
    """Generate unique organization ID for API tests"""
    return f"api_test_org_{uuid.uuid4().hex[:16]}"


def org_path(organization_id: str, suffix: str) -> str:
    return f"{CREDIT_API_PATH}/organizations/{organization_id}/{suffix}"
