"""
Credit Microservice API

Organization credit ledger: balances, atomic debits, grants, ledger history
and the credit price list.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from core.auth_dependencies import (
    acting_user_id,
    optional_auth_or_internal_service,
    require_auth_or_internal_service,
)
from core.config_manager import ConfigManager
from core.logger import setup_service_logger

from .credit_service import CreditService
from .factory import create_credit_service
from .models import (
    BalanceResponse,
    CheckCreditsRequest,
    CreditCheckResponse,
    CreditPricingResponse,
    DebitCreditsRequest,
    DebitResponse,
    ErrorResponse,
    GrantCreditsRequest,
    GrantListResponse,
    GrantResponse,
    HealthCheckResponse as HealthResponse,
    LedgerQueryRequest,
    PaginatedLedgerResponse,
    ReconciliationResponse,
    SetPricingRequest,
)
from .protocols import (
    CreditRepositoryProtocol,
    IdempotencyConflictError,
    InsufficientCreditsError,
    InvalidAmountError,
    InvalidQueryError,
    PricingNotFoundError,
    StorageFailureError,
)
from .routes_registry import BASE_PATH, SERVICE_METADATA, get_route_summary

# Initialize configuration manager
config_manager = ConfigManager("credit_service")
config = config_manager.get_service_config()

# Configure logging
logger = setup_service_logger("credit_service", level=config.log_level.upper())

# Print configuration info (development environment)
if config.debug:
    config_manager.print_config_summary(show_secrets=False)

# Global variables
credit_service: Optional[CreditService] = None
repository: Optional[CreditRepositoryProtocol] = None
event_bus = None  # Injected by deployments that run a message bus
SERVICE_PORT = config.service_port or 8229
SERVICE_VERSION = SERVICE_METADATA["version"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management"""
    global credit_service, repository

    try:
        # Create credit service using factory (with or without event bus)
        credit_service = create_credit_service(config=config_manager, event_bus=event_bus)

        # Initialize repository connection
        repository = credit_service.repository
        await repository.initialize()

        logger.info(
            f"Credit service started on port {SERVICE_PORT} "
            f"(storage={config.storage_backend}, pricing={config.pricing_policy})"
        )
        yield

    except Exception as e:
        logger.error(f"Failed to initialize credit service: {e}")
        raise
    finally:
        if repository:
            await repository.close()
            logger.info("Credit service storage closed")


# Create FastAPI application
app = FastAPI(
    title="Credit Service",
    description="Organization credit ledger with atomic debits and an append-only audit trail",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)


# ====================
# Exception Handlers
# ====================


def _error(status_code: int, error: str, exc: Exception, **extra) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        detail=str(exc),
        timestamp=datetime.now(timezone.utc),
        **extra,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


@app.exception_handler(InsufficientCreditsError)
async def insufficient_credits_handler(request: Request, exc: InsufficientCreditsError):
    return _error(
        status.HTTP_402_PAYMENT_REQUIRED,
        "insufficient_credits",
        exc,
        required=exc.required,
        available=exc.available,
    )


@app.exception_handler(InvalidAmountError)
async def invalid_amount_handler(request: Request, exc: InvalidAmountError):
    return _error(status.HTTP_400_BAD_REQUEST, "invalid_amount", exc)


@app.exception_handler(InvalidQueryError)
async def invalid_query_handler(request: Request, exc: InvalidQueryError):
    return _error(status.HTTP_400_BAD_REQUEST, "invalid_query", exc)


@app.exception_handler(PricingNotFoundError)
async def pricing_not_found_handler(request: Request, exc: PricingNotFoundError):
    return _error(status.HTTP_404_NOT_FOUND, "pricing_not_found", exc)


@app.exception_handler(IdempotencyConflictError)
async def idempotency_conflict_handler(request: Request, exc: IdempotencyConflictError):
    return _error(status.HTTP_409_CONFLICT, "idempotency_conflict", exc)


@app.exception_handler(StorageFailureError)
async def storage_failure_handler(request: Request, exc: StorageFailureError):
    logger.error(f"Storage failure in {request.url.path}: {exc} (reason={exc.reason})")
    return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "storage_failure", exc)


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return _error(status.HTTP_400_BAD_REQUEST, "bad_request", exc)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(f"Unhandled exception in {request.url}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal_error", "detail": "Internal server error occurred"},
    )


# ====================
# Dependency Injection
# ====================


async def get_credit_service() -> CreditService:
    """Get credit service instance"""
    if not credit_service:
        raise HTTPException(status_code=503, detail="Credit service not initialized")
    return credit_service


# ====================
# Health Check and Service Info
# ====================


@app.get(f"{BASE_PATH}/health", response_model=HealthResponse)
@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Basic health check"""
    dependencies = {}

    # Check storage
    store = credit_service.repository if credit_service else None
    if store is not None:
        result = await store.health_check()
        dependencies["database"] = "healthy" if result and result.get("healthy") else "unhealthy"
    else:
        dependencies["database"] = "unhealthy"

    dependencies["event_bus"] = "healthy" if credit_service and credit_service.event_bus else "not_configured"

    status_value = "healthy" if all(v in ["healthy", "not_configured"] for v in dependencies.values()) else "degraded"

    return HealthResponse(
        status=status_value,
        service="credit_service",
        port=SERVICE_PORT,
        version=SERVICE_VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(),
        dependencies=dependencies,
    )


@app.get("/health/detailed", response_model=HealthResponse)
async def health_check_detailed():
    """Detailed health check with full dependencies"""
    return await health_check()


@app.get(f"{BASE_PATH}/info")
async def service_info():
    """Service metadata and route summary"""
    return {
        **SERVICE_METADATA,
        "storage_backend": config.storage_backend,
        "pricing_policy": config.pricing_policy,
        "routes": get_route_summary(),
    }


# ====================
# Balance Operations
# ====================


@app.get(f"{BASE_PATH}/organizations/{{organization_id}}/balance", response_model=BalanceResponse)
async def get_balance(
    organization_id: str,
    service: CreditService = Depends(get_credit_service),
):
    """Current balance (0 for an organization that never transacted)"""
    balance = await service.get_balance(organization_id)
    return BalanceResponse(organization_id=organization_id, balance=balance)


@app.post(f"{BASE_PATH}/organizations/{{organization_id}}/check", response_model=CreditCheckResponse)
async def check_credits(
    organization_id: str,
    request: CheckCreditsRequest,
    service: CreditService = Depends(get_credit_service),
):
    """Advisory, non-locking check; the debit re-validates under lock"""
    return await service.check_sufficient_credits(
        organization_id=organization_id,
        action_type=request.action_type,
        platform=request.platform,
        required_credits=request.required_credits,
    )


# ====================
# Credit Operations
# ====================


@app.post(f"{BASE_PATH}/organizations/{{organization_id}}/debit", response_model=DebitResponse)
async def debit_credits(
    organization_id: str,
    request: DebitCreditsRequest,
    caller: Optional[str] = Depends(optional_auth_or_internal_service),
    service: CreditService = Depends(get_credit_service),
):
    """Debit credits for a billable action"""
    return await service.debit_credits(
        organization_id=organization_id,
        platform=request.platform,
        required_credits=request.required_credits,
        user_id=request.user_id or acting_user_id(caller),
        article_id=request.article_id,
        action_type=request.action_type,
        metadata=request.metadata,
        idempotency_key=request.idempotency_key,
    )


@app.post(f"{BASE_PATH}/organizations/{{organization_id}}/grants", response_model=GrantResponse)
async def grant_credits(
    organization_id: str,
    request: GrantCreditsRequest,
    caller: str = Depends(require_auth_or_internal_service),
    service: CreditService = Depends(get_credit_service),
):
    """Grant credits; the caller is recorded as the granting administrator"""
    return await service.grant_credits(
        organization_id=organization_id,
        amount=request.amount,
        granted_by=acting_user_id(caller),
        reason=request.reason,
        metadata=request.metadata,
    )


@app.get(f"{BASE_PATH}/organizations/{{organization_id}}/grants", response_model=GrantListResponse)
async def list_grants(
    organization_id: str,
    page: int = 1,
    page_size: Optional[int] = None,
    caller: str = Depends(require_auth_or_internal_service),
    service: CreditService = Depends(get_credit_service),
):
    """Grant records, most recent first"""
    return await service.list_grants(organization_id, page=page, page_size=page_size)


# ====================
# Ledger History
# ====================


@app.get(f"{BASE_PATH}/organizations/{{organization_id}}/ledger", response_model=PaginatedLedgerResponse)
async def get_ledger(
    organization_id: str,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    platform: Optional[str] = None,
    action_type: Optional[str] = None,
    page: int = 1,
    page_size: Optional[int] = None,
    service: CreditService = Depends(get_credit_service),
):
    """Paginated ledger, most recent first"""
    try:
        query = LedgerQueryRequest(
            start_date=start_date,
            end_date=end_date,
            platform=platform,
            action_type=action_type,
            page=page,
            page_size=page_size,
        )
    except ValidationError as e:
        raise InvalidQueryError(f"Invalid ledger query: {e.errors()[0].get('msg')}") from e

    return await service.list_ledger(
        organization_id,
        filters=query.to_filters(),
        page=query.page,
        page_size=query.page_size,
    )


@app.get(
    f"{BASE_PATH}/organizations/{{organization_id}}/reconciliation",
    response_model=ReconciliationResponse,
)
async def verify_reconciliation(
    organization_id: str,
    service: CreditService = Depends(get_credit_service),
):
    """Stored balance compared with the sum of ledger deltas"""
    return await service.verify_reconciliation(organization_id)


# ====================
# Price List
# ====================


@app.get(f"{BASE_PATH}/pricing", response_model=List[CreditPricingResponse])
async def list_pricing(service: CreditService = Depends(get_credit_service)):
    """All configured prices"""
    return await service.list_pricing()


@app.get(f"{BASE_PATH}/pricing/{{action_type}}/{{platform}}", response_model=CreditPricingResponse)
async def get_pricing(
    action_type: str,
    platform: str,
    service: CreditService = Depends(get_credit_service),
):
    """Price for one action/platform pair"""
    return await service.get_pricing(action_type.upper(), platform.lower())


@app.put(f"{BASE_PATH}/pricing", response_model=CreditPricingResponse)
async def set_pricing(
    request: SetPricingRequest,
    caller: str = Depends(require_auth_or_internal_service),
    service: CreditService = Depends(get_credit_service),
):
    """Create or update a price"""
    logger.info(f"Price update {request.action_type}/{request.platform} by {caller}")
    return await service.set_pricing(
        action_type=request.action_type,
        platform=request.platform,
        credits_required=request.credits_required,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "microservices.credit_service.main:app",
        host=config.service_host,
        port=SERVICE_PORT,
        reload=config.debug,
        log_level=config.log_level.lower(),
    )
